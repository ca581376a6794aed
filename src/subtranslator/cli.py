"""CLI entry point for the subtitle translator."""

import logging
import signal
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import LANGUAGE_NAMES, TranslationConfig
from .core import CheckpointStore, TranslationService
from .subtitles import SubtitleParser
from .translation import CancelToken, TranslationCancelled, TranslationError, segment
from .translation.batch import get_batch_stats
from .translation.orchestrator import BatchProgress, LogEvent, LogEventType

LOG_COLORS = {
    LogEventType.REQUEST: 'cyan',
    LogEventType.RESPONSE: 'green',
    LogEventType.WAITING: 'yellow',
    LogEventType.ERROR: 'red',
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


@click.group()
@click.version_option(version=__version__)
def cli():
    """Translate SRT and VTT subtitles in resumable batches."""
    pass


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--language', '-l', default='persian', help='Target language code')
@click.option('--batch-size', '-b', default=50, show_default=True, help='Subtitles per request (10-100)')
@click.option('--provider', type=click.Choice(['gemini', 'ollama']), default='gemini', help='Translation backend')
@click.option('--api-key', envvar='GEMINI_API_KEY', help='Gemini API key')
@click.option('--model', default=None, help='Gemini model name')
@click.option('--ollama-url', default='http://localhost:11434', help='Ollama API URL')
@click.option('--ollama-model', default='translategemma:12b', help='Ollama model name')
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path), help='Output file')
@click.option('--no-resume', is_flag=True, help='Ignore saved progress and start over')
@click.option('--checkpoint', type=click.Path(dir_okay=False, path_type=Path), help='Progress file location')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def translate(
    file: Path,
    language: str,
    batch_size: int,
    provider: str,
    api_key: Optional[str],
    model: Optional[str],
    ollama_url: str,
    ollama_model: str,
    output: Optional[Path],
    no_resume: bool,
    checkpoint: Optional[Path],
    verbose: bool
):
    """Translate a subtitle file.

    FILE is the path to the source .srt or .vtt file.
    """
    _configure_logging(verbose)

    config = TranslationConfig.from_env(
        target_language=language,
        batch_size=batch_size,
        provider=provider,
        gemini_api_key=api_key,
        gemini_model=model,
        ollama_url=ollama_url,
        ollama_model=ollama_model,
        checkpoint_path=checkpoint,
        verbose=verbose
    )

    if provider == 'gemini' and not config.gemini_api_key:
        click.secho("Error: no Gemini API key. Set GEMINI_API_KEY or pass --api-key.", fg='red', err=True)
        raise SystemExit(1)

    service = TranslationService(config=config)
    token = CancelToken()

    def on_interrupt(signum, frame):
        click.secho("\nCancelling... progress will be saved.", fg='yellow', err=True)
        token.cancel()

    previous_handler = signal.signal(signal.SIGINT, on_interrupt)

    def progress_callback(progress: BatchProgress):
        click.echo(
            f"  [{progress.completed_batches}/{progress.total_batches}] "
            f"{progress.completed_entries}/{progress.total_entries} subtitles "
            f"({progress.elapsed_formatted}) {progress.status}"
        )

    def log_callback(event: LogEvent):
        label = f"[{event.batch_label}] " if event.batch_label else ""
        click.secho(f"{label}{event.message}", fg=LOG_COLORS[event.event_type])
        if verbose and event.details:
            click.echo(f"    {event.details}".replace("\n", "\n    "))

    click.echo(f"Translating {file} to {config.get_language_name(language)}...")

    try:
        report = service.translate_file(
            file,
            target_language=language,
            output_path=output,
            resume=not no_resume,
            progress_callback=progress_callback,
            log_callback=log_callback,
            cancel_token=token
        )
    except TranslationCancelled:
        click.secho("Translation cancelled. Progress saved - run again to resume.", fg='yellow', err=True)
        raise SystemExit(130)
    except TranslationError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        click.echo("Progress saved - run the same command again to resume.", err=True)
        raise SystemExit(1)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    click.echo()
    if report.resumed_from:
        click.echo(f"Resumed from batch {report.resumed_from + 1}.")
    click.secho(
        f"Translated {report.total_entries} subtitles in {report.total_batches} batches.",
        fg='green'
    )
    click.echo(f"Output: {report.output_file}")


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--batch-size', '-b', default=50, show_default=True, help='Subtitles per request (10-100)')
@click.option('--preview', default=10, show_default=True, help='Number of entries to show')
def parse(file: Path, batch_size: int, preview: int):
    """Parse a subtitle file and show how it would be batched.

    FILE is the path to the .srt or .vtt file to parse.
    """
    subtitle = SubtitleParser().parse_file(file)

    if not subtitle.entries:
        click.secho("No entries found.", fg='yellow')
        return

    stats = get_batch_stats(segment(subtitle.entries, batch_size))

    click.echo(f"Format: {subtitle.format.upper()}")
    click.echo(f"Entries: {stats.total_entries}")
    click.echo(
        f"Batches: {stats.total_batches} "
        f"(~{stats.avg_entries_per_batch} per batch, ~{stats.estimated_tokens} tokens)"
    )
    click.echo()

    for entry in subtitle.entries[:preview]:
        click.secho(f"[{entry.index}] {entry.start_time} --> {entry.end_time}", fg='cyan')
        click.echo(entry.text)
        click.echo()


@cli.command()
@click.option('--checkpoint', type=click.Path(dir_okay=False, path_type=Path), help='Progress file location')
def status(checkpoint: Optional[Path]):
    """Show saved translation progress."""
    config = TranslationConfig(checkpoint_path=checkpoint)
    state = CheckpointStore(config.get_checkpoint_path()).load()

    if state is None:
        click.secho("No saved progress.", fg='yellow')
        return

    click.echo(f"File: {state.source_file}")
    click.echo(f"Language: {config.get_language_name(state.target_language)}")
    click.echo(
        f"Progress: {state.completed_batches}/{state.total_batches} batches "
        f"({len(state.translated_entries)}/{state.total_entries} subtitles)"
    )
    click.echo(f"Saved at: {state.saved_at}")
    if state.failed:
        click.secho("Last run failed.", fg='red')
    if state.is_resumable:
        click.secho("Resume available.", fg='green')


@cli.command()
@click.option('--checkpoint', type=click.Path(dir_okay=False, path_type=Path), help='Progress file location')
def clear(checkpoint: Optional[Path]):
    """Discard saved translation progress."""
    config = TranslationConfig(checkpoint_path=checkpoint)
    CheckpointStore(config.get_checkpoint_path()).clear()
    click.secho("Saved progress cleared.", fg='green')


@cli.command()
@click.option('--provider', type=click.Choice(['gemini', 'ollama']), default='gemini', help='Translation backend')
@click.option('--api-key', envvar='GEMINI_API_KEY', help='Gemini API key')
@click.option('--model', default=None, help='Gemini model name')
def check(provider: str, api_key: Optional[str], model: Optional[str]):
    """Check if the translation backend is available."""
    config = TranslationConfig.from_env(provider=provider, gemini_api_key=api_key, gemini_model=model)
    service = TranslationService(config=config)

    ready, message = service.is_ready()

    if ready:
        click.secho("Translation backend is ready!", fg='green')
        if provider == 'ollama':
            click.echo(f"  Ollama URL: {config.ollama_url}")
            click.echo(f"  Model: {config.ollama_model}")
        else:
            click.echo(f"  Model: {config.gemini_model}")
    else:
        click.secho(f"Error: {message}", fg='red')
        raise SystemExit(1)


@cli.command()
def languages():
    """List supported target language codes."""
    for code, name in LANGUAGE_NAMES.items():
        click.echo(f"  {code:<12} {name}")


if __name__ == '__main__':
    cli()

"""
Best-effort persistence of resumable translation progress.

Storage problems are logged and swallowed: losing a checkpoint must never
abort a translation.
"""

import json
import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..translation.orchestrator import CheckpointState

logger = logging.getLogger(__name__)


class CheckpointStore:
    """Stores a single checkpoint as a JSON file."""

    def __init__(self, path: Path):
        """
        Initialize the store.

        Args:
            path: JSON file holding the checkpoint.
        """
        self.path = Path(path)

    def save(self, state: CheckpointState) -> None:
        """
        Persist a checkpoint, stamping ``saved_at``.

        Args:
            state: Checkpoint to save
        """
        state = replace(state, saved_at=datetime.now().isoformat())
        tmp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2, ensure_ascii=False)
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not save progress to {self.path}: {e}")
            return

        logger.debug(
            f"Saved progress: {state.completed_batches}/{state.total_batches} batches"
        )

    def load(self) -> Optional[CheckpointState]:
        """
        Load the checkpoint.

        Returns:
            CheckpointState if one is stored and readable, None otherwise
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return CheckpointState.from_dict(data)
        except (OSError, ValueError, TypeError, KeyError) as e:
            logger.warning(f"Could not load progress from {self.path}: {e}")
            return None

    def clear(self) -> None:
        """Remove the stored checkpoint, if any."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not clear progress at {self.path}: {e}")

    def find_resumable(
        self,
        source_file: str,
        target_language: Optional[str] = None
    ) -> Optional[CheckpointState]:
        """
        Return the stored checkpoint if it can resume this file.

        Args:
            source_file: Name of the subtitle file being translated
            target_language: Required target language, if any

        Returns:
            The checkpoint when it belongs to the same file (and language),
            has translated entries and is not complete; None otherwise
        """
        state = self.load()
        if state is None or state.source_file != source_file:
            return None
        if target_language and state.target_language != target_language:
            return None
        if not state.is_resumable:
            return None
        return state

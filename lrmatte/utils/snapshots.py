"""Background writer for per-iteration alpha/confidence debug images."""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

from lrmatte.pipeline.state import MattingState
from lrmatte.utils.img import save_gray

logger = logging.getLogger(__name__)

_STOP = None


class SnapshotWriter:
    """Observer that queues snapshots and writes them from a single worker thread.

    Files are named ``alpha_<iteration>.png`` and ``confidence_<iteration>.png``;
    iteration 0 is the initial estimate.
    """

    def __init__(self, directory: Path, save_confidence: bool = True, prefix: str = "") -> None:
        self.directory = Path(directory)
        self.save_confidence = save_confidence
        self.prefix = prefix
        self.directory.mkdir(parents=True, exist_ok=True)
        self._queue: "queue.Queue[Optional[Tuple[Path, np.ndarray]]]" = queue.Queue()
        self._errors = 0
        self._thread = threading.Thread(target=self._drain, name="lrmatte-snapshots", daemon=True)
        self._thread.start()

    def __call__(self, stage: str, state: MattingState) -> None:
        self._queue.put((self.directory / f"{self.prefix}alpha_{state.iteration}.png", state.alpha))
        if self.save_confidence:
            self._queue.put(
                (self.directory / f"{self.prefix}confidence_{state.iteration}.png", state.confidence)
            )

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                path, values = item
                try:
                    save_gray(path, values)
                except (OSError, RuntimeError):
                    self._errors += 1
                    logger.warning("Failed to write snapshot %s", path, exc_info=True)
            finally:
                self._queue.task_done()

    def close(self) -> int:
        """Flush pending snapshots, stop the worker and return the number of failed writes."""
        if self._thread.is_alive():
            self._queue.put(_STOP)
            self._thread.join()
        return self._errors

    def __enter__(self) -> "SnapshotWriter":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

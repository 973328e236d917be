"""
Run Sentinel
============

File-based guard against overlapping worker ticks.

The marker is created exclusively; an existing marker younger than the
staleness threshold means another tick is running. An older one is left
over from a crashed run and is reclaimed. The marker is removed on every
exit path of the tick that created it.

Before a stale marker is unlinked its age is read again, so a marker another
run has just reclaimed is left alone. The short window between that second
reading and the unlink is not closed; only one scheduler runs ticks.
"""

import os
import time
from pathlib import Path
from typing import Callable, Union

from inquiry_board.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

DEFAULT_STALE_SECONDS = 300


class RunSentinel:
    """
    Exclusive-create marker file with age-based reclaim.

    Usage:
        sentinel = RunSentinel(path)
        if not sentinel.acquire():
            return
        try:
            ...
        finally:
            sentinel.release()
    """

    def __init__(
        self,
        path: Union[str, Path],
        stale_seconds: int = DEFAULT_STALE_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        self._path = Path(path)
        self._stale_seconds = stale_seconds
        self._clock = clock
        self._held = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._held

    def _create(self) -> bool:
        try:
            fd = os.open(self._path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w") as marker:
            marker.write(f"{os.getpid()} {self._clock():.0f}\n")
        return True

    def age_seconds(self) -> float:
        """Age of the existing marker; raises FileNotFoundError if there is none."""
        return self._clock() - self._path.stat().st_mtime

    def acquire(self) -> bool:
        """Create the marker. Returns False while another live run holds it."""
        if self._create():
            self._held = True
            return True

        try:
            age = self.age_seconds()
        except FileNotFoundError:
            # Released between our attempt and the stat
            self._held = self._create()
            return self._held

        if age < self._stale_seconds:
            logger.info(
                "Another worker run is active, exiting",
                extra={"lock_path": str(self._path), "lock_age_seconds": round(age, 1)}
            )
            return False

        # Another run may have reclaimed it since the first reading
        try:
            age = self.age_seconds()
        except FileNotFoundError:
            age = float(self._stale_seconds)
        if age < self._stale_seconds:
            logger.info(
                "Stale worker sentinel was reclaimed by another run, exiting",
                extra={"lock_path": str(self._path), "lock_age_seconds": round(age, 1)}
            )
            return False

        logger.warning(
            "Reclaiming stale worker sentinel",
            extra={"lock_path": str(self._path), "lock_age_seconds": round(age, 1)}
        )
        self._path.unlink(missing_ok=True)
        self._held = self._create()
        return self._held

    def release(self) -> None:
        """Remove the marker if this instance created it."""
        if not self._held:
            return
        self._path.unlink(missing_ok=True)
        self._held = False

    def __enter__(self) -> "RunSentinel":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

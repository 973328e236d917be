"""
Triage Infrastructure Layer
===========================

Infrastructure implementations for the triage module.

Contains:
- Lock: Run sentinel preventing overlapping worker ticks
- Scheduler: APScheduler interval loop for the worker
"""

from inquiry_board.triage.infrastructure.lock import RunSentinel, DEFAULT_STALE_SECONDS
from inquiry_board.triage.infrastructure.scheduler import WorkerScheduler

__all__ = [
    "RunSentinel",
    "DEFAULT_STALE_SECONDS",
    "WorkerScheduler",
]

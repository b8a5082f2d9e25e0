"""
Progress Reporting

Progress sinks receive the bulk recompute's progress so that a UI, a CLI or
a test harness can follow it without the orchestrator knowing who listens.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class ProgressPhase(str, Enum):
    """Phase shown next to a progress value"""
    STARTED = "started"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class ProgressEvent:
    """A single progress notification"""
    phase: ProgressPhase
    percent: float
    title: str
    subtitle: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ProgressSink:
    """
    Receives progress notifications

    The base class ignores everything; subclasses override what they need.
    """

    def show_progress(self, title: str, subtitle: Optional[str] = None) -> None:
        pass

    def update_progress(self, percent: float, phase: ProgressPhase = ProgressPhase.PROCESSING,
                        title: Optional[str] = None, subtitle: Optional[str] = None) -> None:
        pass

    def complete_progress(self, title: str = 'Processing completed!', subtitle: Optional[str] = None) -> None:
        pass

    def error_progress(self, title: str, subtitle: Optional[str] = None) -> None:
        pass


class LoggingProgressSink(ProgressSink):
    """Writes progress notifications to a logger"""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def show_progress(self, title: str, subtitle: Optional[str] = None) -> None:
        self.log.info(f"{title} - {subtitle}" if subtitle else title)

    def update_progress(self, percent: float, phase: ProgressPhase = ProgressPhase.PROCESSING,
                        title: Optional[str] = None, subtitle: Optional[str] = None) -> None:
        self.log.info(f"[{percent:5.1f}%] {phase.value}: {subtitle or title or ''}")

    def complete_progress(self, title: str = 'Processing completed!', subtitle: Optional[str] = None) -> None:
        self.log.info(f"{title} - {subtitle}" if subtitle else title)

    def error_progress(self, title: str, subtitle: Optional[str] = None) -> None:
        self.log.error(f"{title} - {subtitle}" if subtitle else title)


class RecordingProgressSink(ProgressSink):
    """Keeps every notification as a ProgressEvent"""

    def __init__(self):
        self.events: List[ProgressEvent] = []
        self.percent = 0.0

    def show_progress(self, title: str, subtitle: Optional[str] = None) -> None:
        self.percent = 0.0
        self.events.append(ProgressEvent(ProgressPhase.STARTED, 0.0, title, subtitle))

    def update_progress(self, percent: float, phase: ProgressPhase = ProgressPhase.PROCESSING,
                        title: Optional[str] = None, subtitle: Optional[str] = None) -> None:
        self.percent = min(100.0, max(0.0, percent))
        self.events.append(ProgressEvent(phase, self.percent, title or '', subtitle))

    def complete_progress(self, title: str = 'Processing completed!', subtitle: Optional[str] = None) -> None:
        self.percent = 100.0
        self.events.append(ProgressEvent(ProgressPhase.COMPLETED, 100.0, title, subtitle))

    def error_progress(self, title: str, subtitle: Optional[str] = None) -> None:
        self.events.append(ProgressEvent(ProgressPhase.ERROR, self.percent, title, subtitle))

    @property
    def phases(self) -> List[ProgressPhase]:
        return [event.phase for event in self.events]

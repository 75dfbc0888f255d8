from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Notice:
    level: NoticeLevel
    title: str
    description: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)


class Notifier(Protocol):
    def success(self, message: str) -> None:
        ...

    def error(self, title: str, description: Optional[str] = None) -> None:
        ...


class NoticeBoard:
    """Keeps transient user notices in arrival order and mirrors them to the log."""

    def __init__(self) -> None:
        self.notices: List[Notice] = []

    def success(self, message: str) -> None:
        self.notices.append(Notice(level=NoticeLevel.SUCCESS, title=message))
        logger.info(message)

    def error(self, title: str, description: Optional[str] = None) -> None:
        self.notices.append(Notice(level=NoticeLevel.ERROR, title=title, description=description))
        logger.error(f"{title}: {description}" if description else title)

    @property
    def latest(self) -> Optional[Notice]:
        return self.notices[-1] if self.notices else None

    def drain(self) -> List[Notice]:
        notices, self.notices = self.notices, []
        return notices

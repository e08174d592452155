"""
Change notification sources.

Consumers ask a NotificationSource whether anything changed since the cursor
they last saw. The polling implementation fetches a full snapshot and diffs it
by fingerprint; a push-based source can replace it behind the same interface.
"""

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    changed: bool
    cursor: str
    payload: Any = None

    def to_dict(self):
        data = {"changed": self.changed, "cursor": self.cursor}
        if self.changed:
            data["data"] = self.payload
        return data


def fingerprint(snapshot) -> str:
    """Stable sha256 over the canonical JSON form of a snapshot."""
    canonical = json.dumps(snapshot, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class NotificationSource(ABC):
    """Something a client can ask 'has this changed since <cursor>?'."""

    @abstractmethod
    def poll(self, cursor: Optional[str] = None) -> Notification:
        pass


class PollingNotificationSource(NotificationSource):
    """Fetch-and-diff source: changed only when the snapshot fingerprint moves."""

    def __init__(self, fetch: Callable[[], Any], name: str = "snapshot"):
        self.fetch = fetch
        self.name = name

    def poll(self, cursor: Optional[str] = None) -> Notification:
        snapshot = self.fetch()
        current = fingerprint(snapshot)
        if cursor and cursor == current:
            logger.debug(f"{self.name} unchanged since cursor {cursor[:12]}")
            return Notification(changed=False, cursor=current)
        return Notification(changed=True, cursor=current, payload=snapshot)

"""
Project Context
===============

Per-project mutable state passed through the pipeline: the used-asset set,
the project's failure ledger, a notification log, the brand registry and
undo history. Nothing here is shared between projects.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any, Set

from ..project.history import ProjectHistory
from ..project.models import FailureLedger, VideoProject
from .brand_registry import BrandAssetRegistry

logger = logging.getLogger(__name__)


NOTIFICATION_LEVELS = ("info", "warning", "error")


@dataclass
class Notification:
    level: str
    service: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "service": self.service,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class ProjectContext:
    """
    State scoped to one production run.

    Usage:
        ctx = ProjectContext(project)
        ctx.mark_used(url)
        ctx.notify("warning", "Music", "No music provider available")
    """

    def __init__(
        self,
        project: VideoProject,
        brand_registry: Optional[BrandAssetRegistry] = None,
        history: Optional[ProjectHistory] = None,
    ):
        self.project = project
        self.brand_registry = brand_registry
        self.history = history or ProjectHistory()
        self.used_urls: Set[str] = set()
        self.notifications: List[Notification] = []

        # Assets already on the project count as used
        for scene in project.scenes:
            for asset in (scene.background.image, scene.background.video):
                if asset is not None and asset.url:
                    self.used_urls.add(asset.url)

    @property
    def ledger(self) -> FailureLedger:
        return self.project.progress.service_failures

    def mark_used(self, url: Optional[str]) -> None:
        if url:
            self.used_urls.add(url)

    def is_used(self, url: Optional[str]) -> bool:
        return bool(url) and url in self.used_urls

    def notify(self, level: str, service: str, message: str) -> Notification:
        """Record a user-facing notification."""
        if level not in NOTIFICATION_LEVELS:
            level = "info"
        note = Notification(level=level, service=service, message=message)
        self.notifications.append(note)

        log = logger.error if level == "error" else logger.warning if level == "warning" else logger.info
        log(f"[{service}] {message}")
        return note

    def to_dict(self) -> Dict[str, Any]:
        return {
            "used_urls": sorted(self.used_urls),
            "notifications": [n.to_dict() for n in self.notifications],
            "service_failures": self.ledger.to_list(),
        }

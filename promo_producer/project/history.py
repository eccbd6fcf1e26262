"""
Project History
===============

Bounded undo/redo for project content. Snapshots cover scenes, assets and
timing; the failure ledger and stage progress are never rolled back.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .models import ProjectAssets, Scene, VideoProject

logger = logging.getLogger(__name__)


@dataclass
class ProjectSnapshot:
    label: str
    scenes: List[Scene]
    assets: ProjectAssets
    total_duration: int
    taken_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def capture(cls, project: VideoProject, label: str) -> "ProjectSnapshot":
        return cls(
            label=label,
            scenes=copy.deepcopy(project.scenes),
            assets=copy.deepcopy(project.assets),
            total_duration=project.total_duration,
        )

    def apply(self, project: VideoProject) -> None:
        project.scenes = copy.deepcopy(self.scenes)
        project.assets = copy.deepcopy(self.assets)
        project.total_duration = self.total_duration
        project.touch()


class ProjectHistory:
    """
    Undo/redo stack of project snapshots.

    Usage:
        history = ProjectHistory()
        history.snapshot(project, "before image regeneration")
        ...  # mutate project
        history.undo(project)
    """

    def __init__(self, max_entries: int = 50):
        self.max_entries = max_entries
        self._undo: List[ProjectSnapshot] = []
        self._redo: List[ProjectSnapshot] = []

    def snapshot(self, project: VideoProject, label: str = "") -> None:
        """Record the current state before a change."""
        self._undo.append(ProjectSnapshot.capture(project, label))
        if len(self._undo) > self.max_entries:
            self._undo.pop(0)
        self._redo.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def undo(self, project: VideoProject) -> Optional[str]:
        """Restore the previous snapshot. Returns its label, or None."""
        if not self._undo:
            return None
        snapshot = self._undo.pop()
        self._redo.append(ProjectSnapshot.capture(project, snapshot.label))
        snapshot.apply(project)
        logger.info(f"Undo: {snapshot.label or 'unnamed change'}")
        return snapshot.label

    def redo(self, project: VideoProject) -> Optional[str]:
        """Re-apply the most recently undone change. Returns its label, or None."""
        if not self._redo:
            return None
        snapshot = self._redo.pop()
        self._undo.append(ProjectSnapshot.capture(project, snapshot.label))
        snapshot.apply(project)
        logger.info(f"Redo: {snapshot.label or 'unnamed change'}")
        return snapshot.label

    def __len__(self) -> int:
        return len(self._undo)

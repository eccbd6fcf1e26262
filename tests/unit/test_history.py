"""Unit tests for project undo/redo."""

import pytest

from promo_producer.project.history import ProjectHistory
from promo_producer.project.models import AssetReference, Scene, VideoProject

pytestmark = pytest.mark.unit


@pytest.fixture
def project():
    return VideoProject(title="Test", scenes=[Scene(order=0, narration="First version", duration=5)], total_duration=5)


class TestProjectHistory:

    def test_undo_restores_previous_state(self, project):
        history = ProjectHistory()
        history.snapshot(project, "edit narration")
        project.scenes[0].narration = "Second version"

        assert history.undo(project) == "edit narration"
        assert project.scenes[0].narration == "First version"
        assert history.can_redo

    def test_redo_reapplies_change(self, project):
        history = ProjectHistory()
        history.snapshot(project, "edit narration")
        project.scenes[0].narration = "Second version"
        history.undo(project)

        assert history.redo(project) == "edit narration"
        assert project.scenes[0].narration == "Second version"

    def test_new_snapshot_clears_redo(self, project):
        history = ProjectHistory()
        history.snapshot(project, "one")
        history.undo(project)
        history.snapshot(project, "two")
        assert not history.can_redo

    def test_empty_history(self, project):
        history = ProjectHistory()
        assert history.undo(project) is None
        assert history.redo(project) is None

    def test_bounded(self, project):
        history = ProjectHistory(max_entries=2)
        for label in ("a", "b", "c"):
            history.snapshot(project, label)
        assert len(history) == 2

    def test_ledger_is_not_rolled_back(self, project):
        history = ProjectHistory()
        history.snapshot(project, "regenerate")
        project.progress.service_failures.record("images", "fal-flux-pro: timeout")
        project.assets.music = AssetReference(url="https://cdn.example.com/music.mp3")

        history.undo(project)

        assert project.assets.music is None
        assert len(project.progress.service_failures) == 1

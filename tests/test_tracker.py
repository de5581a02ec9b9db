"""Tests for the failure/attempt ledger."""

from pathlib import Path

from uiforge.config import Tier
from uiforge.workflow import tracker
from uiforge.workflow.state import default_state, merge_overlay
from uiforge.workflow.tracker import ArtifactStatus


def _apply(state, overlay):
    return merge_overlay(state, overlay)


class TestRecordFailure:
    def test_new_failure(self):
        state = _apply(default_state(), tracker.record_failure(default_state(), "Button", errors=["e1"]))

        record = state["failed_components"]["Button"]
        assert record.error_lines() == ["e1"]
        assert not record.attempted_fix
        assert tracker.failure_status(state, "Button") == ArtifactStatus.FAILED
        assert state["fix_attempts"] == {}

    def test_overwrite_keeps_attempted_fix(self):
        state = default_state()
        state = _apply(state, tracker.record_failure(state, "Button", errors=["e1"], tier=Tier.ELEMENTS))
        state = _apply(state, tracker.record_fix_attempt(state, "Button"))
        state = _apply(state, tracker.record_failure(state, "Button", errors="still broken"))

        record = state["failed_components"]["Button"]
        assert record.attempted_fix
        assert record.errors == "still broken"
        assert record.error_lines() == ["still broken"]
        assert record.tier == Tier.ELEMENTS
        assert tracker.failure_status(state, "Button") == ArtifactStatus.FIX_ATTEMPTED

    def test_failure_removes_from_validated(self):
        state = default_state()
        state = _apply(state, tracker.resolve(state, "Button"))
        state = _apply(state, tracker.record_failure(state, "Button", path=Path("ui/elements/Button")))

        assert state["validated_components"] == []
        assert state["failed_components"]["Button"].path == Path("ui/elements/Button")

    def test_does_not_mutate_input(self):
        state = default_state()
        tracker.record_failure(state, "Button", errors=["e1"])
        assert state["failed_components"] == {}


class TestRecordFixAttempt:
    def test_counts_every_call(self):
        state = default_state()
        state = _apply(state, tracker.record_failure(state, "Button", errors=["e1"]))
        for _ in range(3):
            state = _apply(state, tracker.record_fix_attempt(state, "Button"))
        assert state["fix_attempts"] == {"Button": 3}

    def test_counts_without_failure_record(self):
        state = _apply(default_state(), tracker.record_fix_attempt(default_state(), "Ghost"))
        assert state["fix_attempts"] == {"Ghost": 1}
        assert state["failed_components"] == {}


class TestResolveAndConvergence:
    def test_full_lifecycle(self):
        state = default_state()
        assert tracker.failure_status(state, "Button") == ArtifactStatus.NEVER_FAILED
        assert tracker.is_converged(state)

        state = _apply(state, tracker.record_failure(state, "Button", errors=["e1"]))
        state = _apply(state, tracker.record_failure(state, "Star", errors=["e2"]))
        assert not tracker.is_converged(state)
        assert tracker.unresolved(state) == ["Button", "Star"]

        state = _apply(state, tracker.resolve(state, "Button"))
        assert tracker.failure_status(state, "Button") == ArtifactStatus.RESOLVED
        assert tracker.unresolved(state) == ["Star"]

        state = _apply(state, tracker.resolve(state, "Star"))
        assert tracker.is_converged(state)
        assert state["validated_components"] == ["Button", "Star"]

    def test_resolve_is_idempotent(self):
        state = default_state()
        state = _apply(state, tracker.resolve(state, "Button"))
        state = _apply(state, tracker.resolve(state, "Button"))
        assert state["validated_components"] == ["Button"]

    def test_forget(self):
        state = default_state()
        state = _apply(state, tracker.record_failure(state, "Button", errors=["e1"]))
        state = _apply(state, tracker.resolve(state, "Star"))
        state = _apply(state, tracker.forget(state, "Button"))
        state = _apply(state, tracker.forget(state, "Star"))

        assert state["failed_components"] == {}
        assert state["validated_components"] == []
        assert tracker.failure_status(state, "Star") == ArtifactStatus.NEVER_FAILED

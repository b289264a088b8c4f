"""Tests for RichSyncProgress and NullSyncProgress."""

from __future__ import annotations

import io

from rich.console import Console

from modsync.cli.progress import RichSyncProgress
from modsync.engine.progress import NullSyncProgress, SyncProgress


def _quiet_console() -> Console:
    return Console(file=io.StringIO(), width=100)


class TestNullSyncProgress:
    """NullSyncProgress is a no-op implementation."""

    def test_implements_protocol(self) -> None:
        assert issubclass(NullSyncProgress, SyncProgress)

    def test_phase_lifecycle_is_noop(self) -> None:
        progress = NullSyncProgress()
        progress.phase_start("Fetch")
        progress.set_total("Fetch", 3)
        progress.advance("Fetch", 3)
        progress.phase_done("Fetch")
        progress.phase_error("Push", RuntimeError("boom"))


class TestRichSyncProgress:
    """RichSyncProgress drives Rich progress bars."""

    def test_implements_protocol(self) -> None:
        assert issubclass(RichSyncProgress, SyncProgress)

    def test_context_manager_exposes_console(self) -> None:
        console = _quiet_console()
        progress = RichSyncProgress(console)
        with progress as p:
            assert p is progress
            assert p.console is console

    def test_determinate_phase_completes(self) -> None:
        with RichSyncProgress(_quiet_console()) as progress:
            progress.phase_start("Push", total=2)
            progress.advance("Push")
            progress.phase_done("Push")

            task = progress._progress.tasks[0]
            assert task.completed == 2

    def test_total_learned_from_first_page(self) -> None:
        with RichSyncProgress(_quiet_console()) as progress:
            progress.phase_start("Fetch")
            progress.set_total("Fetch", 5)
            progress.advance("Fetch", 2)

            task = progress._progress.tasks[0]
            assert task.total == 5
            assert task.completed == 2

    def test_indeterminate_phase_is_marked_done(self) -> None:
        with RichSyncProgress(_quiet_console()) as progress:
            progress.phase_start("Reconcile")
            progress.phase_done("Reconcile")

            task = progress._progress.tasks[0]
            assert task.total == 1
            assert task.completed == 1

    def test_phase_error_marks_description(self) -> None:
        with RichSyncProgress(_quiet_console()) as progress:
            progress.phase_start("Fetch")
            progress.phase_error("Fetch", RuntimeError("boom"))

            assert "✗" in progress._progress.tasks[0].description

    def test_unknown_phase_is_noop(self) -> None:
        with RichSyncProgress(_quiet_console()) as progress:
            progress.set_total("Unknown", 3)
            progress.advance("Unknown")
            progress.phase_done("Unknown")
            progress.phase_error("Unknown", RuntimeError("boom"))

            assert progress._progress.tasks == []

    def test_multiple_phases_sequentially(self) -> None:
        with RichSyncProgress(_quiet_console()) as progress:
            for phase, total in [("Push", 1), ("Fetch", None), ("Reconcile", None), ("Verify", 3)]:
                progress.phase_start(phase, total=total)
                if total:
                    progress.advance(phase, total)
                progress.phase_done(phase)

            assert len(progress._progress.tasks) == 4

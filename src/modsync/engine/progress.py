"""Progress reporting protocol for reconciliation runs.

The reconciliation engine emits phase lifecycle events (``Push``, ``Fetch``,
``Reconcile``, ``Verify``); the CLI's Rich display implements
``SyncProgress`` to render them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class SyncProgress(ABC):
    @abstractmethod
    def phase_start(self, phase: str, total: int | None = None) -> None:
        """*phase* is starting; *total* is ``None`` until the amount of work is known."""
        ...  # pragma: no cover

    @abstractmethod
    def set_total(self, phase: str, total: int) -> None:
        """The amount of work in *phase* became known (e.g. from a first page)."""
        ...  # pragma: no cover

    @abstractmethod
    def advance(self, phase: str, count: int = 1) -> None:
        """*count* units of *phase* have completed."""
        ...  # pragma: no cover

    @abstractmethod
    def phase_done(self, phase: str) -> None: ...  # pragma: no cover

    @abstractmethod
    def phase_error(self, phase: str, error: BaseException) -> None: ...  # pragma: no cover


class NullSyncProgress(SyncProgress):
    def phase_start(self, phase: str, total: int | None = None) -> None:
        pass

    def set_total(self, phase: str, total: int) -> None:
        pass

    def advance(self, phase: str, count: int = 1) -> None:
        pass

    def phase_done(self, phase: str) -> None:
        pass

    def phase_error(self, phase: str, error: BaseException) -> None:
        pass

"""CLI progress displays."""

from modsync.cli.progress.rich import RichSyncProgress

__all__ = ["RichSyncProgress"]

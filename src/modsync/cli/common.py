"""Shared CLI formatting helpers."""

from __future__ import annotations

from collections.abc import Iterable


def format_ids(values: Iterable[int]) -> str:
    ids = sorted(values)
    if not ids:
        return "none"
    return ", ".join(str(value) for value in ids)


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"

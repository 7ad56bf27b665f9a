"""Utility helpers for the Movie Discovery client."""

from __future__ import annotations

from typing import Callable, Hashable, Iterable, TypeVar

T = TypeVar("T")


def build_image_url(path: str | None, base_url: str) -> str | None:
    """Return an absolute artwork URL, or ``None`` for missing paths."""

    if not path:
        return None
    if path.startswith("http"):
        return path
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def merge_unique(
    base: Iterable[T],
    incoming: Iterable[T],
    key: Callable[[T], Hashable],
) -> dict[Hashable, T]:
    """Merge two sequences keyed by ``key``.

    Later entries replace earlier ones in place; unseen keys are appended.
    """

    merged: dict[Hashable, T] = {}
    for item in base:
        merged[key(item)] = item
    for item in incoming:
        merged[key(item)] = item
    return merged

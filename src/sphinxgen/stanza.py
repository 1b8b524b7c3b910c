"""Rendering of named configuration blocks."""

from __future__ import annotations

from typing import Iterable, Sequence


def render_stanza(header: str, lines: Iterable[str]) -> str:
    """Render ``header`` followed by a braced block of indented setting lines.

    Args:
        header: Block header such as ``index person_core``.
        lines: Setting lines in ``key = value`` form; multi-line entries are split.

    Returns:
        str: Block text terminated by a newline.
    """

    body: list[str] = []
    for line in lines:
        body.extend(f"  {part}" for part in line.splitlines() if part)
    return "\n".join([header, "{", *body, "}"]) + "\n"


def setting(key: str, value: object) -> str:
    return f"{key} = {value}".rstrip()


def source_references(names: Sequence[str]) -> str:
    """Join source names into newline-separated ``source = name`` lines."""
    return "\n".join(setting("source", name) for name in names)


__all__ = ["render_stanza", "setting", "source_references"]

"""Terminal rendering of line diffs returned by the compare endpoint."""

from __future__ import annotations

import click

MARKERS = {"ADDED": "+", "REMOVED": "-", "UNCHANGED": " "}
COLORS = {"ADDED": "green", "REMOVED": "red"}


def _number(value: int | None, width: int) -> str:
    return str(value).rjust(width) if value is not None else " " * width


def render_unified(lines: list[dict], color: bool = False) -> str:
    """One column with both sides' line numbers and a +/- marker."""
    if not lines:
        return "(empty)"
    out = []
    for line in lines:
        kind = line["type"]
        text = (
            f"{_number(line.get('source_line'), 4)} {_number(line.get('target_line'), 4)} "
            f"{MARKERS[kind]} {line['content']}"
        )
        if color and kind in COLORS:
            text = click.style(text, fg=COLORS[kind])
        out.append(text)
    return "\n".join(out)


def _pair_rows(lines: list[dict]) -> list[tuple[dict | None, dict | None]]:
    """Side-by-side rows. Removals and additions in one change run share rows."""
    rows: list[tuple[dict | None, dict | None]] = []
    removed: list[dict] = []
    added: list[dict] = []

    def flush() -> None:
        for i in range(max(len(removed), len(added))):
            rows.append((
                removed[i] if i < len(removed) else None,
                added[i] if i < len(added) else None,
            ))
        removed.clear()
        added.clear()

    for line in lines:
        if line["type"] == "REMOVED":
            removed.append(line)
        elif line["type"] == "ADDED":
            added.append(line)
        else:
            flush()
            rows.append((line, line))
    flush()
    return rows


def render_split(lines: list[dict], width: int = 40, color: bool = False) -> str:
    """Source on the left, target on the right."""
    if not lines:
        return "(empty)"
    out = []
    for left, right in _pair_rows(lines):
        left_text = (
            f"{_number(left.get('source_line'), 4)} {left['content']}" if left else ""
        )[:width].ljust(width)
        right_text = f"{_number(right.get('target_line'), 4)} {right['content']}" if right else ""
        marker = "|" if left is right else ("<" if right is None else ">" if left is None else "*")
        if color and left is not right:
            left_text = click.style(left_text, fg="red") if left else left_text
            right_text = click.style(right_text, fg="green") if right else right_text
        out.append(f"{left_text} {marker} {right_text}".rstrip())
    return "\n".join(out)

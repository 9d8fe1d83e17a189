"""Line diffing engine and version comparison."""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import SequenceMatcher
from enum import Enum

from prompt_studio.db.models import PromptParameter, PromptVersion


class DiffType(str, Enum):
    ADDED = "ADDED"
    REMOVED = "REMOVED"
    UNCHANGED = "UNCHANGED"


@dataclass(frozen=True)
class VersionDiff:
    """One line of a diff.

    REMOVED lines carry only a source line number, ADDED lines only a target
    line number, UNCHANGED lines both.
    """

    type: DiffType
    content: str
    source_line: int | None = None
    target_line: int | None = None

    @property
    def line_number(self) -> int:
        if self.source_line is not None:
            return self.source_line
        return self.target_line or 0


@dataclass
class ParameterChanges:
    added: list[PromptParameter] = field(default_factory=list)
    removed: list[PromptParameter] = field(default_factory=list)
    changed: list[PromptParameter] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


@dataclass
class VersionComparisonResult:
    source: PromptVersion
    target: PromptVersion
    content_diff: list[VersionDiff]
    system_prompt_diff: list[VersionDiff]
    parameters_diff: list[VersionDiff]
    parameter_changes: ParameterChanges
    similarity: float
    summary: str

    @property
    def identical(self) -> bool:
        diffs = self.content_diff + self.system_prompt_diff + self.parameters_diff
        return all(d.type == DiffType.UNCHANGED for d in diffs)


def split_lines(text: str) -> list[str]:
    """Split on newlines exactly; empty text has no lines."""
    return text.split("\n") if text else []


def _lcs_table(a: list[str], b: list[str]) -> list[list[int]]:
    """table[i][j] is the LCS length of a[i:] and b[j:]."""
    n, m = len(a), len(b)
    table = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below = table[i], table[i + 1]
        for j in range(m - 1, -1, -1):
            if a[i] == b[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])
    return table


def _align(a: list[str], b: list[str]) -> list[tuple[DiffType, str]]:
    """Walk the LCS table forward, producing raw diff operations."""
    ops: list[tuple[DiffType, str]] = []

    # Common prefix and suffix never need the table.
    start = 0
    while start < len(a) and start < len(b) and a[start] == b[start]:
        start += 1
    end_a, end_b = len(a), len(b)
    while end_a > start and end_b > start and a[end_a - 1] == b[end_b - 1]:
        end_a -= 1
        end_b -= 1

    ops.extend((DiffType.UNCHANGED, line) for line in a[:start])

    mid_a, mid_b = a[start:end_a], b[start:end_b]
    table = _lcs_table(mid_a, mid_b)
    i = j = 0
    while i < len(mid_a) and j < len(mid_b):
        if mid_a[i] == mid_b[j]:
            ops.append((DiffType.UNCHANGED, mid_a[i]))
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            ops.append((DiffType.REMOVED, mid_a[i]))
            i += 1
        else:
            ops.append((DiffType.ADDED, mid_b[j]))
            j += 1
    ops.extend((DiffType.REMOVED, line) for line in mid_a[i:])
    ops.extend((DiffType.ADDED, line) for line in mid_b[j:])

    ops.extend((DiffType.UNCHANGED, line) for line in a[end_a:])
    return ops


def _removed_first(ops: list[tuple[DiffType, str]]) -> list[tuple[DiffType, str]]:
    """Within each run of changes, put removals before additions."""
    ordered: list[tuple[DiffType, str]] = []
    removed: list[tuple[DiffType, str]] = []
    added: list[tuple[DiffType, str]] = []
    for op in ops:
        if op[0] == DiffType.REMOVED:
            removed.append(op)
        elif op[0] == DiffType.ADDED:
            added.append(op)
        else:
            ordered.extend(removed)
            ordered.extend(added)
            removed, added = [], []
            ordered.append(op)
    ordered.extend(removed)
    ordered.extend(added)
    return ordered


def diff_lines(source_text: str, target_text: str) -> list[VersionDiff]:
    """Compute a line diff between two texts using a longest common subsequence.

    Line numbers are 1-based and counted per side so split views can number
    their gutters independently.
    """
    ops = _removed_first(_align(split_lines(source_text), split_lines(target_text)))

    diffs: list[VersionDiff] = []
    source_no = target_no = 0
    for kind, line in ops:
        if kind == DiffType.UNCHANGED:
            source_no += 1
            target_no += 1
            diffs.append(VersionDiff(kind, line, source_line=source_no, target_line=target_no))
        elif kind == DiffType.REMOVED:
            source_no += 1
            diffs.append(VersionDiff(kind, line, source_line=source_no))
        else:
            target_no += 1
            diffs.append(VersionDiff(kind, line, target_line=target_no))
    return diffs


def reconstruct(diffs: list[VersionDiff], side: str = "target") -> str:
    """Rebuild one side of a diff: "source" keeps REMOVED+UNCHANGED, "target" ADDED+UNCHANGED."""
    dropped = DiffType.ADDED if side == "source" else DiffType.REMOVED
    return "\n".join(d.content for d in diffs if d.type != dropped)


def serialize_parameter(param: PromptParameter) -> str:
    """One comparable line per parameter: ``name (TYPE)[ required][ = default]``."""
    line = f"{param.name} ({param.parameter_type.value})"
    if param.required:
        line += " required"
    if param.default_value is not None:
        line += f" = {param.default_value}"
    return line


def serialize_parameters(params: list[PromptParameter]) -> str:
    return "\n".join(serialize_parameter(p) for p in params)


def _parameter_differs(old: PromptParameter, new: PromptParameter) -> bool:
    return (
        old.parameter_type != new.parameter_type
        or old.required != new.required
        or old.default_value != new.default_value
        or old.description != new.description
    )


def parameter_changes(
    source_params: list[PromptParameter],
    target_params: list[PromptParameter],
) -> ParameterChanges:
    """Partition parameters by name into added, removed and changed.

    A renamed parameter shows up as one removal and one addition.
    """
    source_by_name = {p.name: p for p in source_params}
    target_names = {p.name for p in target_params}

    changes = ParameterChanges()
    for param in target_params:
        old = source_by_name.get(param.name)
        if old is None:
            changes.added.append(param)
        elif _parameter_differs(old, param):
            changes.changed.append(param)
    changes.removed = [p for p in source_params if p.name not in target_names]
    return changes


def _count(diffs: list[VersionDiff], kind: DiffType) -> int:
    return sum(1 for d in diffs if d.type == kind)


def _summarize(
    content_diff: list[VersionDiff],
    system_prompt_diff: list[VersionDiff],
    changes: ParameterChanges,
) -> str:
    parts = []
    for label, diffs in (("content", content_diff), ("system prompt", system_prompt_diff)):
        added = _count(diffs, DiffType.ADDED)
        removed = _count(diffs, DiffType.REMOVED)
        if added or removed:
            parts.append(f"{label}: {added} line(s) added, {removed} line(s) removed")
    if changes.added:
        parts.append(f"{len(changes.added)} parameter(s) added")
    if changes.removed:
        parts.append(f"{len(changes.removed)} parameter(s) removed")
    if changes.changed:
        parts.append(f"{len(changes.changed)} parameter(s) changed")
    return "; ".join(parts) if parts else "No changes"


def compare_versions(source: PromptVersion, target: PromptVersion) -> VersionComparisonResult:
    """Diff content, system prompt and parameters of two versions.

    Comparing a version with itself is allowed and yields an all-unchanged result.
    """
    content_diff = diff_lines(source.content, target.content)
    system_prompt_diff = diff_lines(source.system_prompt or "", target.system_prompt or "")
    parameters_diff = diff_lines(
        serialize_parameters(source.parameters),
        serialize_parameters(target.parameters),
    )
    changes = parameter_changes(source.parameters, target.parameters)
    similarity = SequenceMatcher(None, source.content, target.content).ratio()

    return VersionComparisonResult(
        source=source,
        target=target,
        content_diff=content_diff,
        system_prompt_diff=system_prompt_diff,
        parameters_diff=parameters_diff,
        parameter_changes=changes,
        similarity=round(similarity, 2),
        summary=_summarize(content_diff, system_prompt_diff, changes),
    )

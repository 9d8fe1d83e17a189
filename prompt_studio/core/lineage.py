"""Ancestry and branches of prompt versions via parent links."""

from __future__ import annotations

from collections.abc import Callable, Iterable

import structlog

from prompt_studio.core.errors import BrokenLineage, CycleDetected
from prompt_studio.db.models import PromptVersion

logger = structlog.get_logger()

FetchVersion = Callable[[str], "PromptVersion | None"]


def lineage_chain(version_id: str, fetch_by_id: FetchVersion) -> list[PromptVersion]:
    """Return the ancestor chain of a version, root first, ending with the version itself.

    ``fetch_by_id`` is the lookup into the version store. Raises CycleDetected
    if a version id is revisited and BrokenLineage if a link points nowhere.
    """
    chain: list[PromptVersion] = []
    seen: set[str] = set()
    current_id: str | None = version_id

    while current_id:
        if current_id in seen:
            visited = [v.id for v in chain]
            logger.error("lineage.cycle_detected", version_id=current_id, start=version_id)
            raise CycleDetected(current_id, visited)
        seen.add(current_id)

        version = fetch_by_id(current_id)
        if version is None:
            logger.error("lineage.broken_link", version_id=current_id, start=version_id)
            raise BrokenLineage(current_id)

        chain.append(version)
        current_id = version.parent_version_id

    chain.reverse()
    return chain


def children(version_id: str, all_versions: Iterable[PromptVersion]) -> list[PromptVersion]:
    """Direct branches of a version among the supplied candidates."""
    return [v for v in all_versions if v.parent_version_id == version_id]

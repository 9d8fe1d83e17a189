"""Version status state machine.

Legality of a status change is a lookup in ``STATUS_TRANSITIONS``; nothing
here performs side effects. Audit entries and cascading archive on publish
are handled by the version manager.
"""

from __future__ import annotations

import structlog

from prompt_studio.core.errors import InvalidTransition
from prompt_studio.db.models import VersionStatus

logger = structlog.get_logger()

STATUS_TRANSITIONS: dict[VersionStatus, frozenset[VersionStatus]] = {
    VersionStatus.DRAFT: frozenset({VersionStatus.REVIEW}),
    VersionStatus.REVIEW: frozenset(
        {VersionStatus.PUBLISHED, VersionStatus.REJECTED, VersionStatus.DRAFT}
    ),
    VersionStatus.PUBLISHED: frozenset({VersionStatus.ARCHIVED}),
    VersionStatus.ARCHIVED: frozenset({VersionStatus.PUBLISHED}),
    VersionStatus.REJECTED: frozenset({VersionStatus.DRAFT}),
}

STATUS_LABELS: dict[VersionStatus, str] = {
    VersionStatus.DRAFT: "Draft",
    VersionStatus.REVIEW: "In Review",
    VersionStatus.PUBLISHED: "Published",
    VersionStatus.ARCHIVED: "Archived",
    VersionStatus.REJECTED: "Rejected",
}


def allowed_transitions(status: VersionStatus) -> frozenset[VersionStatus]:
    """Statuses reachable from ``status`` in one step. Unknown statuses get an empty set."""
    return STATUS_TRANSITIONS.get(status, frozenset())


def can_transition(current: VersionStatus, target: VersionStatus) -> bool:
    return target in allowed_transitions(current)


def transition(current: VersionStatus, target: VersionStatus) -> VersionStatus:
    """Validate a status change and return the new status.

    Raises InvalidTransition when the table does not permit it.
    """
    if not can_transition(current, target):
        logger.info("lifecycle.transition_rejected", current=current.value, target=target.value)
        raise InvalidTransition(current, target)
    return target


def transition_map(status: VersionStatus) -> dict[str, list[str]]:
    """``{current: [allowed...]}`` in a stable order, as served by the API."""
    allowed = sorted(s.value for s in allowed_transitions(status))
    return {status.value: allowed}

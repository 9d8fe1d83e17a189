"""Error taxonomy for the version lifecycle."""

from __future__ import annotations

from prompt_studio.db.models import VersionStatus


class StudioError(Exception):
    """Base class for prompt studio errors."""


class ValidationError(StudioError, ValueError):
    """Field-level validation failure. The caller fixes the input and resubmits."""

    def __init__(self, message: str, errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class InvalidTransition(StudioError, ValueError):
    """Requested status change is not permitted from the current status."""

    def __init__(self, current: VersionStatus, target: VersionStatus) -> None:
        super().__init__(f"Cannot transition from {current.value} to {target.value}")
        self.current = current
        self.target = target


class LineageError(StudioError):
    """Parent links of a version do not form a valid chain."""


class CycleDetected(LineageError):
    def __init__(self, version_id: str, chain: list[str]) -> None:
        super().__init__(
            f"Lineage cycle detected: {' → '.join(chain)} → {version_id}"
        )
        self.version_id = version_id
        self.chain = chain


class BrokenLineage(LineageError):
    def __init__(self, version_id: str) -> None:
        super().__init__(f"Parent version '{version_id}' not found in lineage")
        self.version_id = version_id

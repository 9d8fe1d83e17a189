"""Version audit trail. Every mutation of a prompt version is recorded here."""

from __future__ import annotations

from functools import lru_cache

import structlog

from prompt_studio.db.client import SupabaseClient, get_supabase_client
from prompt_studio.db.models import AuditAction, VersionAuditEntry, VersionStatus

logger = structlog.get_logger()

AUDIT_TABLE = "version_audit_log"


class VersionAuditLog:
    """Writes and reads version_audit_log rows."""

    def __init__(self, db: SupabaseClient) -> None:
        self.db = db

    def record(
        self,
        version_id: str,
        action: AuditAction,
        performed_by: str = "system",
        details: str = "",
        previous_status: VersionStatus | None = None,
        new_status: VersionStatus | None = None,
        reference_version_id: str | None = None,
        comment: str | None = None,
    ) -> VersionAuditEntry:
        row = self.db.insert(
            AUDIT_TABLE,
            {
                "version_id": version_id,
                "action": action.value,
                "performed_by": performed_by,
                "details": details,
                "previous_status": previous_status.value if previous_status else None,
                "new_status": new_status.value if new_status else None,
                "reference_version_id": reference_version_id,
                "comment": comment,
            },
        )
        logger.info("audit.recorded", version_id=version_id, action=action.value, actor=performed_by)
        return VersionAuditEntry(**row)

    def trail(self, version_id: str, limit: int | None = None) -> list[VersionAuditEntry]:
        """Entries for a version, newest first."""
        rows = self.db.select(
            AUDIT_TABLE,
            filters={"version_id": version_id},
            order_by="created_at",
            ascending=False,
            limit=limit,
        )
        return [VersionAuditEntry(**row) for row in rows]


@lru_cache
def get_audit_log() -> VersionAuditLog:
    """Get cached audit log instance."""
    return VersionAuditLog(get_supabase_client())

"""
Audit log writer.

Business actions (sales drafts, confirmations, DO specification saves) are
recorded in audit_log. A failed audit write never fails the action itself.
"""

from typing import Any, Optional
import structlog

from config import get_admin_client, get_supabase_client

logger = structlog.get_logger(__name__)


class AuditService:
    """
    Inserts rows into audit_log.

    Uses the service-role client when configured so row-level security
    on audit_log does not block writes.
    """

    def __init__(self):
        self.db = get_admin_client() or get_supabase_client()
        self.table = "audit_log"

    def record(
        self,
        table_name: str,
        record_id: str,
        action: str,
        user_id: Optional[str],
        new_values: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Record an audit entry.

        Args:
            table_name: Table the action touched
            record_id: Row the action touched
            action: Action code, e.g. SALES_CONFIRMED
            user_id: Acting user
            new_values: Snapshot of the values written

        Returns:
            True if written, False if the insert failed
        """
        try:
            self.db.table(self.table).insert({
                "table_name": table_name,
                "record_id": record_id,
                "action": action,
                "user_id": user_id,
                "new_values": new_values or {},
            }).execute()

            logger.debug("audit_recorded", action=action, record_id=record_id)
            return True

        except Exception as e:
            logger.warning(
                "audit_record_failed",
                action=action,
                record_id=record_id,
                error=str(e)
            )
            return False


# Singleton instance for convenience
_audit_service: Optional[AuditService] = None


def get_audit_service() -> AuditService:
    """Get or create AuditService instance."""
    global _audit_service
    if _audit_service is None:
        _audit_service = AuditService()
    return _audit_service

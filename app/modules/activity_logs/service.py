from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class ActivityLogService:
    """Append-only audit trail. Failures here never propagate to the caller."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def log(
        self,
        user_id: Optional[str],
        action: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        project_id: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        try:
            self.supabase.table("activity_logs").insert({
                "user_id": user_id,
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "project_id": project_id,
                "details": details,
            }).execute()
        except Exception as e:
            logger.warning(f"Failed to record activity '{action}' for {entity_type} {entity_id}: {e}")

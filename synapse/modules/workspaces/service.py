import logging
from datetime import datetime, timezone
from typing import Dict, List

from supabase import Client

from synapse.core.users import find_auth_user_by_email

logger = logging.getLogger(__name__)

AI_TRAINING_DEFAULTS = {
    "status": "collecting_data",
    "messages_analyzed": 0,
    "faqs_detected": 0,
    "company_info_extracted": 0,
    "seller_patterns_learned": 0,
    "objections_learned": 0,
    "confidence_score": 0,
    "min_days_required": 7,
    "min_messages_required": 100,
}


class WorkspaceService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def snapshot(self) -> Dict[str, List[dict]]:
        """Workspaces, profiles, memberships and connections in one dump"""
        tables = {
            "workspaces": "*",
            "profiles": "*",
            "workspace_members": "*",
            "whatsapp_connections": "id, workspace_id, name, instance_name, status",
        }
        dump = {}
        for table, columns in tables.items():
            result = self.supabase.table(table).select(columns).execute()
            dump[table] = result.data or []
        return dump

    def init_ai_training_status(self, workspace_id: str) -> dict:
        """Create the default ai_training_status row; returns the existing one if present"""
        existing = self.supabase.table("ai_training_status")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .limit(1)\
            .execute()
        if existing.data:
            logger.info(f"Training status already exists: {existing.data[0]['id']}")
            return existing.data[0]

        result = self.supabase.table("ai_training_status").insert({
            "workspace_id": workspace_id,
            **AI_TRAINING_DEFAULTS,
            "started_at": datetime.now(timezone.utc).isoformat()
        }).execute()
        if not result.data:
            raise RuntimeError("Failed to insert ai_training_status")
        logger.info(f"AI status initialized: {result.data[0]['id']}")
        return result.data[0]

    def delete_auth_user(self, email: str) -> str:
        """Delete the auth user with this email; returns its id"""
        user = find_auth_user_by_email(self.supabase, email)
        if not user:
            raise LookupError(f"User not found: {email}")
        self.supabase.auth.admin.delete_user(user.id)
        logger.info(f"Deleted auth user {user.id} ({email})")
        return user.id

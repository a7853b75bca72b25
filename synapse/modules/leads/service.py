import logging
from datetime import datetime, timezone
from typing import List, Optional

from supabase import Client

logger = logging.getLogger(__name__)

HOT_SCORE = 70
WARM_SCORE = 40


def classify_temperature(score: int) -> str:
    """hot from 70, warm from 40, cold below"""
    if score >= HOT_SCORE:
        return "hot"
    if score >= WARM_SCORE:
        return "warm"
    return "cold"


class LeadService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def find_lead(self, name: str, workspace_id: Optional[str] = None) -> Optional[dict]:
        """First lead whose name contains `name` (case-insensitive)"""
        query = self.supabase.table("leads")\
            .select("id, workspace_id, name, score, temperature")\
            .ilike("name", f"%{name}%")
        if workspace_id:
            query = query.eq("workspace_id", workspace_id)
        result = query.limit(1).execute()
        return result.data[0] if result.data else None

    def qualify_lead(
        self,
        name: str,
        score: int,
        objections: Optional[List[str]] = None,
        workspace_id: Optional[str] = None,
    ) -> dict:
        """Set a lead's score by hand, as the AI qualifier would"""
        if not 0 <= score <= 100:
            raise ValueError("score must be between 0 and 100")

        lead = self.find_lead(name, workspace_id)
        if not lead:
            raise LookupError(f'Lead "{name}" not found')

        update = {
            "score": score,
            "temperature": classify_temperature(score),
            "status": "in_progress",
            "objections": objections or [],
            "last_activity_at": datetime.now(timezone.utc).isoformat()
        }
        result = self.supabase.table("leads")\
            .update(update)\
            .eq("id", lead["id"])\
            .execute()

        logger.info(f"Lead {lead['name']} ({lead['id']}) updated: score {score}, {update['temperature']}")
        return result.data[0] if result.data else {**lead, **update}

from fastapi import APIRouter, Depends
from supabase import Client

from synapse.core.dependencies import get_bearer_token, get_user_from_token
from synapse.database.supabase_client import get_service_supabase
from synapse.modules.team.schemas import TeamMemberCreate, TeamMemberCreated
from synapse.modules.team.service import TeamService

router = APIRouter(tags=["team"])


def get_team_service(supabase: Client = Depends(get_service_supabase)) -> TeamService:
    return TeamService(supabase)


@router.post("/create-team-member", response_model=TeamMemberCreated)
async def create_team_member(
    body: TeamMemberCreate,
    token: str = Depends(get_bearer_token),
    supabase: Client = Depends(get_service_supabase),
    service: TeamService = Depends(get_team_service)
):
    """Create a user and add them to a workspace (requires workspace owner or admin)"""
    requester = get_user_from_token(token, supabase)
    return service.create_team_member(requester, body)

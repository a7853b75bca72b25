import logging
import secrets

from supabase import Client

from synapse.core.dependencies import check_workspace_admin
from synapse.core.errors import FunctionError
from synapse.core.security import sanitize_email, strip_tags
from synapse.modules.team.schemas import TeamMemberCreate, TeamMemberCreated

logger = logging.getLogger(__name__)


def generate_password(length: int = 12) -> str:
    return secrets.token_urlsafe(length)[:length]


class TeamService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_team_member(self, requester: dict, body: TeamMemberCreate) -> TeamMemberCreated:
        """Create an auth user and add them to the requester's workspace.

        The requester must be owner or admin of the target workspace.
        """
        check_workspace_admin(body.workspace_id, requester, self.supabase)

        email = sanitize_email(body.email)
        if not email:
            raise FunctionError("Invalid email", status_code=400)
        full_name = strip_tags(body.full_name)

        try:
            created = self.supabase.auth.admin.create_user({
                "email": email,
                "password": body.password or generate_password(),
                "email_confirm": True,
                "user_metadata": {"full_name": full_name}
            })
        except Exception as e:
            logger.error(f"Failed to create user {email}: {e}")
            raise FunctionError("Failed to create user", status_code=400, details=str(e))

        new_user = getattr(created, "user", None)
        if not new_user:
            raise FunctionError("Failed to create user", status_code=400)

        # Row is created by the signup trigger; fill in the team-specific fields
        try:
            self.supabase.table("profiles")\
                .update({
                    "full_name": full_name,
                    "onboarding_completed": True,
                    "current_workspace_id": body.workspace_id
                })\
                .eq("user_id", new_user.id)\
                .execute()
        except Exception as e:
            logger.warning(f"Profile update failed for {new_user.id}, adding membership anyway: {e}")

        try:
            self.supabase.table("workspace_members").insert({
                "workspace_id": body.workspace_id,
                "user_id": new_user.id,
                "role": body.role
            }).execute()
        except Exception as e:
            logger.error(f"User {new_user.id} created but failed to join workspace {body.workspace_id}: {e}")
            raise FunctionError(
                "User created but failed to join workspace",
                status_code=500,
                details=str(e),
            )

        logger.info(f"Team member {new_user.id} added to workspace {body.workspace_id} as {body.role}")
        return TeamMemberCreated(user_id=new_user.id)

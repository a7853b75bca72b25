"""
Core dependencies for HTTP functions: bearer token handling and workspace role checks
"""

from fastapi import Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import Client
from typing import Dict, Any, Optional
import logging

from synapse.core.errors import FunctionError

logger = logging.getLogger(__name__)

ADMIN_ROLES = ("owner", "admin")

# A missing header is reported by require_token as a 401 FunctionError
security = HTTPBearer(auto_error=False)


def require_token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials is None or not credentials.credentials:
        raise FunctionError("No authorization header", status_code=401)
    return credentials.credentials


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> str:
    """Extract the raw token from the Authorization header"""
    return require_token(credentials)


def get_user_from_token(token: str, supabase: Client) -> Dict[str, Any]:
    """Resolve a Supabase access token to the auth user"""
    try:
        user_response = supabase.auth.get_user(token)
    except Exception as e:
        logger.warning(f"Token lookup failed: {e}")
        raise FunctionError("Invalid token", status_code=401)

    user = getattr(user_response, "user", None)
    if not user:
        raise FunctionError("Invalid token", status_code=401)
    return {
        "id": user.id,
        "email": user.email,
        "user_metadata": user.user_metadata or {},
    }


def get_workspace_role(workspace_id: str, user_id: str, supabase: Client) -> Optional[str]:
    """Return the user's role in the workspace, or None when not a member"""
    result = supabase.table("workspace_members")\
        .select("role")\
        .eq("workspace_id", workspace_id)\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    if not result.data:
        return None
    return result.data[0].get("role")


def check_workspace_admin(workspace_id: str, user_data: dict, supabase: Client) -> dict:
    """Require owner or admin role in the workspace"""
    try:
        role = get_workspace_role(workspace_id, user_data["id"], supabase)
    except Exception as e:
        logger.error(f"Error checking workspace role: {e}")
        role = None

    if role in ADMIN_ROLES:
        return user_data

    raise FunctionError(
        "Unauthorized: Admin access required for this workspace",
        status_code=403,
    )

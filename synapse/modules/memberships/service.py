import logging
from typing import List, Optional

from supabase import Client

from synapse.modules.memberships.models import WORKSPACE_ROLES, PROFILE_IDENTITY_KEYS
from synapse.modules.memberships.schemas import (
    MembershipPair, MembershipFailure, SkippedProfile, ReconciliationReport,
    MemberResponse, UserMembership, UserState
)

logger = logging.getLogger(__name__)

# PostgREST default max-rows
PROFILE_PAGE_SIZE = 1000


class MembershipService:
    def __init__(self, supabase: Client, identity_key: str = "user_id", page_size: int = PROFILE_PAGE_SIZE):
        if identity_key not in PROFILE_IDENTITY_KEYS:
            raise ValueError(f"identity_key must be one of {PROFILE_IDENTITY_KEYS}, got {identity_key!r}")
        self.supabase = supabase
        self.identity_key = identity_key
        self.page_size = page_size

    def identity_of(self, profile: dict) -> Optional[str]:
        """Auth identity of a profile under the configured key. No fallback to the other column."""
        return profile.get(self.identity_key)

    def get_profiles_with_workspace(self) -> List[dict]:
        """All profiles whose current_workspace_id is set, fetched page by page"""
        profiles = []
        start = 0
        while True:
            result = self.supabase.table("profiles")\
                .select("*")\
                .not_.is_("current_workspace_id", "null")\
                .order("id")\
                .range(start, start + self.page_size - 1)\
                .execute()
            page = result.data or []
            profiles.extend(page)
            if len(page) < self.page_size:
                return profiles
            start += self.page_size

    def find_memberships(self, workspace_id: str, user_id: str) -> List[dict]:
        """Membership rows for the pair; at most two are fetched, enough to spot duplicates"""
        result = self.supabase.table("workspace_members")\
            .select("id, role")\
            .eq("workspace_id", workspace_id)\
            .eq("user_id", user_id)\
            .limit(2)\
            .execute()
        return result.data or []

    def add_member(self, workspace_id: str, user_id: str, role: str) -> dict:
        result = self.supabase.table("workspace_members").insert({
            "workspace_id": workspace_id,
            "user_id": user_id,
            "role": role
        }).execute()
        if not result.data:
            raise RuntimeError("Insert returned no rows")
        return result.data[0]

    def reconcile(self, dry_run: bool = False, default_role: str = "owner") -> ReconciliationReport:
        """Ensure every profile with a current workspace is a member of it.

        Missing rows are inserted with `default_role`. Errors on one profile are
        logged and recorded, then processing moves on to the next one. With
        `dry_run` nothing is written and `inserted` lists the planned rows.
        """
        if default_role not in WORKSPACE_ROLES:
            raise ValueError(f"Unknown role: {default_role}")

        report = ReconciliationReport(dry_run=dry_run, identity_key=self.identity_key)
        profiles = self.get_profiles_with_workspace()
        logger.info(f"Found {len(profiles)} profiles with workspaces")

        for profile in profiles:
            report.profiles_checked += 1
            workspace_id = profile["current_workspace_id"]
            user_id = self.identity_of(profile)

            if not user_id:
                logger.warning(
                    f"Profile {profile.get('id')} has no {self.identity_key}; cannot check workspace {workspace_id}"
                )
                report.skipped.append(SkippedProfile(
                    profile_id=profile.get("id"),
                    workspace_id=workspace_id,
                    reason=f"missing {self.identity_key}",
                ))
                continue

            pair = MembershipPair(
                workspace_id=workspace_id,
                user_id=user_id,
                profile_id=profile.get("id"),
                email=profile.get("email"),
            )

            try:
                existing = self.find_memberships(workspace_id, user_id)
            except Exception as e:
                logger.error(f"Error checking membership for user {user_id}: {e}")
                report.failed.append(MembershipFailure(**pair.model_dump(), error=str(e)))
                continue

            if len(existing) > 1:
                logger.warning(f"User {user_id} has {len(existing)} membership rows in workspace {workspace_id}")
                report.duplicates.append(pair)
                continue
            if existing:
                logger.debug(f"User {user_id} is already a member of {workspace_id}")
                report.already_present.append(pair)
                continue

            if dry_run:
                logger.info(f"[dry-run] Would add user {user_id} to workspace {workspace_id} as {default_role}")
                report.inserted.append(pair)
                continue

            try:
                self.add_member(workspace_id, user_id, default_role)
            except Exception as e:
                logger.error(f"Insert error for user {user_id}: {e}")
                report.failed.append(MembershipFailure(**pair.model_dump(), error=str(e)))
                continue

            logger.info(f"Added user {user_id} to workspace {workspace_id} as {default_role}")
            report.inserted.append(pair)

        return report

    def list_workspace_members(self, workspace_id: str) -> List[MemberResponse]:
        """List all members of a workspace"""
        result = self.supabase.table("workspace_members")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .execute()
        return [MemberResponse(**member) for member in result.data or []]

    def get_user_state(self, email: str) -> UserState:
        """Profile, memberships and current-workspace connections for one user"""
        result = self.supabase.table("profiles")\
            .select("*")\
            .eq("email", email)\
            .maybe_single()\
            .execute()
        profile = result.data if result else None
        if not profile:
            raise LookupError(f"Profile not found: {email}")

        user_id = self.identity_of(profile)
        memberships = []
        if user_id:
            members_result = self.supabase.table("workspace_members")\
                .select("workspace_id, role, workspaces(name)")\
                .eq("user_id", user_id)\
                .execute()
            for item in members_result.data or []:
                workspace = item.get("workspaces") or {}
                memberships.append(UserMembership(
                    workspace_id=item["workspace_id"],
                    role=item.get("role", "member"),
                    workspace_name=workspace.get("name"),
                ))

        connections = []
        if profile.get("current_workspace_id"):
            conn_result = self.supabase.table("whatsapp_connections")\
                .select("id, name, instance_name, status, created_at")\
                .eq("workspace_id", profile["current_workspace_id"])\
                .execute()
            connections = conn_result.data or []

        return UserState(
            profile_id=profile["id"],
            user_id=user_id,
            email=profile.get("email"),
            current_workspace_id=profile.get("current_workspace_id"),
            memberships=memberships,
            connections=connections,
        )

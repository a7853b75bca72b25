from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class MembershipPair(BaseModel):
    workspace_id: str
    user_id: str
    profile_id: Optional[str] = None
    email: Optional[str] = None


class MembershipFailure(MembershipPair):
    error: str


class SkippedProfile(BaseModel):
    profile_id: str
    workspace_id: Optional[str] = None
    reason: str


class ReconciliationReport(BaseModel):
    dry_run: bool = False
    identity_key: str
    profiles_checked: int = 0
    inserted: List[MembershipPair] = Field(default_factory=list)
    already_present: List[MembershipPair] = Field(default_factory=list)
    duplicates: List[MembershipPair] = Field(default_factory=list)
    failed: List[MembershipFailure] = Field(default_factory=list)
    skipped: List[SkippedProfile] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class MemberResponse(BaseModel):
    id: str
    workspace_id: str
    user_id: str
    role: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserMembership(BaseModel):
    workspace_id: str
    role: str
    workspace_name: Optional[str] = None


class UserState(BaseModel):
    profile_id: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    current_workspace_id: Optional[str] = None
    memberships: List[UserMembership] = Field(default_factory=list)
    connections: List[dict] = Field(default_factory=list)

    @property
    def is_member_of_current(self) -> bool:
        return any(m.workspace_id == self.current_workspace_id for m in self.memberships)

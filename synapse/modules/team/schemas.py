from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional


class TeamMemberCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: Optional[str] = None
    full_name: str = Field(alias="fullName")
    role: Literal["admin", "member", "seller"]
    workspace_id: str = Field(alias="workspaceId")


class TeamMemberCreated(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    user_id: str = Field(serialization_alias="userId")

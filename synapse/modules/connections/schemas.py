from pydantic import BaseModel, Field
from typing import Optional, List, Any


class BoundInstance(BaseModel):
    instance: str
    workspace_id: str
    workspace_name: Optional[str] = None


class DisconnectedWorkspace(BaseModel):
    workspace_id: str
    workspace_name: Optional[str] = None
    instance_name: Optional[str] = None
    reason: str


class SharedInstance(BaseModel):
    instance: str
    workspace_ids: List[str]


class BindingReport(BaseModel):
    bound: List[BoundInstance] = Field(default_factory=list)
    orphaned: List[str] = Field(default_factory=list)
    disconnected: List[DisconnectedWorkspace] = Field(default_factory=list)
    shared: List[SharedInstance] = Field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not (self.orphaned or self.disconnected or self.shared)


class WebhookSyncResult(BaseModel):
    instance: str
    success: bool
    status: Optional[int] = None
    error: Optional[str] = None


class WebhookSyncResponse(BaseModel):
    success: bool = True
    results: List[WebhookSyncResult] = Field(default_factory=list)


class WebhookStatus(BaseModel):
    instance: str
    connection_id: str
    webhook: Optional[Any] = None
    error: Optional[str] = None


class DebugSnapshot(BaseModel):
    connections: List[dict] = Field(default_factory=list)
    members: List[dict] = Field(default_factory=list)
    connError: Optional[str] = None
    memberError: Optional[str] = None


class CleanupResponse(BaseModel):
    success: bool
    message: str

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class TranscriptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio: Optional[str] = None  # base64
    mime_type: Optional[str] = Field(default=None, alias="mimeType")


class TranscriptionResponse(BaseModel):
    success: bool = True
    text: str

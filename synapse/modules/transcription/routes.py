from fastapi import APIRouter, Depends

from synapse.modules.transcription.schemas import TranscriptionRequest, TranscriptionResponse
from synapse.modules.transcription.service import TranscriptionService

router = APIRouter(tags=["transcription"])


def get_transcription_service() -> TranscriptionService:
    return TranscriptionService()


@router.post("/transcribe-audio", response_model=TranscriptionResponse)
async def transcribe(
    body: TranscriptionRequest,
    service: TranscriptionService = Depends(get_transcription_service)
):
    """Transcribe a base64-encoded audio clip with Whisper"""
    return service.transcribe(body.audio, body.mime_type)

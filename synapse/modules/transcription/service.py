import base64
import binascii
import logging
import uuid
from typing import Optional

from synapse.config import settings
from synapse.core.errors import FunctionError
from synapse.integrations.whisper import transcribe_audio, TranscriptionError
from synapse.modules.transcription.schemas import TranscriptionResponse

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "audio/ogg"

# Checked in order; first substring match wins
_EXTENSIONS = (
    (("mpeg", "mp3"), "mp3"),
    (("wav",), "wav"),
    (("webm",), "webm"),
    (("m4a",), "m4a"),
)


def extension_for(mime_type: Optional[str]) -> str:
    if mime_type:
        for needles, extension in _EXTENSIONS:
            if any(n in mime_type for n in needles):
                return extension
    return "ogg"


def decode_audio(audio: str) -> bytes:
    # Data URLs from the browser carry a "data:audio/ogg;base64," prefix
    if audio.startswith("data:") and "," in audio:
        audio = audio.split(",", 1)[1]
    # MIME-wrapped base64 carries line breaks
    audio = "".join(audio.split())
    try:
        return base64.b64decode(audio, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FunctionError("Audio is not valid base64", status_code=400, details=str(e))


class TranscriptionService:
    def __init__(self, api_key: Optional[str] = None, language: Optional[str] = None, transport=None):
        self.api_key = api_key
        self.language = language or settings.transcription_language
        self.transport = transport

    def transcribe(self, audio: Optional[str], mime_type: Optional[str] = None) -> TranscriptionResponse:
        request_id = uuid.uuid4().hex[:8]
        logger.info(f"[TRANSCRIBE-AUDIO] [{request_id}] Transcribe audio request received")

        if not audio:
            raise FunctionError("No audio data provided")

        api_key = self.api_key or settings.openai_api_key
        if not api_key:
            raise FunctionError("OpenAI API key not configured")

        binary_audio = decode_audio(audio)
        extension = extension_for(mime_type)
        logger.debug(
            f"[TRANSCRIBE-AUDIO] [{request_id}] Audio format detected: {extension}, {len(binary_audio)} bytes"
        )

        try:
            text = transcribe_audio(
                binary_audio,
                f"audio.{extension}",
                api_key,
                content_type=mime_type or DEFAULT_MIME_TYPE,
                language=self.language,
                transport=self.transport,
            )
        except TranscriptionError as e:
            logger.error(f"[TRANSCRIBE-AUDIO] [{request_id}] Transcription error: {e}")
            raise FunctionError(str(e))

        logger.info(f"[TRANSCRIBE-AUDIO] [{request_id}] Transcription successful ({len(text)} chars)")
        return TranscriptionResponse(text=text)

"""Speech-to-text using the OpenAI Whisper API."""

import io
import logging
from typing import Optional

import httpx

from synapse.core.errors import ExternalAPIError

logger = logging.getLogger(__name__)

WHISPER_URL = "https://api.openai.com/v1/audio/transcriptions"

# Max file size for transcription (25MB - Whisper limit)
MAX_TRANSCRIPTION_SIZE_BYTES = 25 * 1024 * 1024


class TranscriptionError(ExternalAPIError):
    """Error during transcription process."""

    pass


def transcribe_audio(
    file_bytes: bytes,
    filename: str,
    api_key: str,
    content_type: str = "audio/ogg",
    language: str = "pt",
    timeout: float = 300.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """
    Transcribe audio using OpenAI Whisper.

    Args:
        file_bytes: The audio file content
        filename: Name sent with the upload; Whisper uses the extension for format detection
        api_key: OpenAI API key
        content_type: MIME type of the upload
        language: ISO 639-1 language code

    Returns:
        Transcription text
    """
    if len(file_bytes) > MAX_TRANSCRIPTION_SIZE_BYTES:
        raise TranscriptionError(
            f"File too large for transcription. Max size is {MAX_TRANSCRIPTION_SIZE_BYTES / (1024 * 1024):.0f}MB"
        )

    files = {"file": (filename, io.BytesIO(file_bytes), content_type)}
    data = {"model": "whisper-1", "language": language}

    with httpx.Client(timeout=timeout, transport=transport) as client:
        try:
            response = client.post(
                WHISPER_URL,
                headers={"Authorization": f"Bearer {api_key}"},
                files=files,
                data=data,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Whisper API error: {e.response.status_code} - {e.response.text}")
            raise TranscriptionError(
                f"Whisper API error: {e.response.status_code}",
                status_code=e.response.status_code,
                body=e.response.text,
            )
        except httpx.TimeoutException:
            raise TranscriptionError("Transcription timed out. The file may be too long.")
        except httpx.HTTPError as e:
            raise TranscriptionError(f"Transcription failed: {e}")

    return response.json().get("text") or ""

import os, httpx, logging
from .settings import OPENAI_TTS_MODEL, OPENAI_SPEECH_URL

logger = logging.getLogger(__name__)


class MissingKeyError(RuntimeError):
    pass


class SynthesisError(RuntimeError):
    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


def _headers():
    api_key = os.getenv("OPENAI_API_KEY", "")
    if not api_key:
        raise MissingKeyError("missing OPENAI_API_KEY on server")
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json"
    }

async def tts_to_bytes(text: str, voice: str = "alloy", format: str = "mp3",
                       client: httpx.AsyncClient = None) -> bytes:
    headers = _headers()
    payload = {
        "model": OPENAI_TTS_MODEL,
        "voice": voice,
        "input": text,
        "format": format,
    }
    if client is None:
        async with httpx.AsyncClient(timeout=60) as own_client:
            r = await own_client.post(OPENAI_SPEECH_URL, headers=headers, json=payload)
    else:
        r = await client.post(OPENAI_SPEECH_URL, headers=headers, json=payload)

    if r.is_error:
        logger.warning(f"OpenAI speech request failed with {r.status_code}")
        raise SynthesisError(r.status_code, r.text or "OpenAI error")
    return r.content

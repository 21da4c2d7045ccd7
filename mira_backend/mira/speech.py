import httpx, logging
from typing import Optional
from .audio import AudioBackend, AudioHandle
from .models import SpeakResult
from .settings import TTS_URL, TTS_TIMEOUT_S, AUDIO_FORMAT, DEFAULT_VOICE

logger = logging.getLogger(__name__)


class SpeechClient:
    """Speaks one line at a time through the synthesis endpoint.

    Owns at most one audio handle. Starting a new line or calling `cancel()`
    stops and releases the previous handle first. `speak()` always returns a
    `SpeakResult`; failures are logged, never raised.
    """

    def __init__(self, backend: AudioBackend, url: str = TTS_URL, format: str = AUDIO_FORMAT,
                 timeout: float = TTS_TIMEOUT_S, transport: httpx.AsyncBaseTransport = None):
        self.backend = backend
        self.url = url
        self.format = format
        self.timeout = timeout
        self._transport = transport
        self._handle: Optional[AudioHandle] = None
        # Bumped on every new speak and on cancel; responses for an older value are dropped
        self._generation = 0

    @property
    def handle(self) -> Optional[AudioHandle]:
        return self._handle

    def _teardown(self):
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.stop()
            handle.release()

    def cancel(self):
        self._generation += 1
        self._teardown()

    async def _request(self, text: str, voice: str) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.post(self.url, json={"text": text, "voice": voice, "format": self.format})

    async def speak(self, text: str, voice: str = DEFAULT_VOICE) -> SpeakResult:
        self._generation += 1
        generation = self._generation
        self._teardown()

        try:
            r = await self._request(text, voice)
        except Exception as e:
            logger.warning(f"TTS request failed: {e!r}")
            return SpeakResult(ok=False, text=text, error=str(e))

        if generation != self._generation:
            logger.info("Discarding speech for a cancelled line")
            return SpeakResult(ok=False, text=text, cancelled=True)

        if r.is_error:
            logger.warning(f"TTS failed: {r.status_code} {r.text}")
            return SpeakResult(ok=False, text=text, error=f"{r.status_code}: {r.text}")

        try:
            handle = self.backend.open(r.content, self.format)
        except Exception as e:
            logger.warning(f"Could not prepare audio: {e!r}")
            return SpeakResult(ok=False, text=text, error=str(e))

        self._handle = handle
        try:
            await handle.play()
        except Exception as e:
            logger.warning(f"Playback failed: {e!r}")
        finally:
            handle.release()
            if self._handle is handle:
                self._handle = None

        return SpeakResult(ok=True, text=text, cancelled=generation != self._generation)

"""
Audio playback for synthesized speech.

A handle owns one payload. `play()` waits for the sound to end (or fail) and
never raises; `stop()` halts it; `release()` frees the temp file. The speech
client guarantees at most one live handle.
"""
import os
import asyncio
import logging
import tempfile
from typing import Optional

logger = logging.getLogger(__name__)


class AudioHandle:
    def __init__(self):
        self.stopped = False
        self.released = False

    async def play(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        self.stopped = True

    def release(self) -> None:
        self.released = True


class AudioBackend:
    def open(self, payload: bytes, fmt: str) -> AudioHandle:
        raise NotImplementedError


class FFPlayHandle(AudioHandle):
    def __init__(self, path: str, player: str = "ffplay"):
        super().__init__()
        self.path = path
        self.player = player
        self._proc: Optional[asyncio.subprocess.Process] = None

    async def play(self) -> None:
        if self.stopped or self.released:
            return
        try:
            self._proc = await asyncio.create_subprocess_exec(
                self.player, "-nodisp", "-autoexit", "-loglevel", "quiet", self.path,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning(f"Could not start {self.player}: {e}")
            return
        if self.stopped:
            self._terminate()
        code = await self._proc.wait()
        if code != 0 and not self.stopped:
            logger.warning(f"{self.player} exited with code {code} for {self.path}")

    def _terminate(self):
        if self._proc is not None and self._proc.returncode is None:
            try:
                self._proc.terminate()
            except ProcessLookupError:
                pass

    def stop(self) -> None:
        super().stop()
        self._terminate()

    def release(self) -> None:
        if self.released:
            return
        super().release()
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove {self.path}: {e}")


class FFPlayBackend(AudioBackend):
    """Plays payloads through ffplay from a temp file"""

    def __init__(self, player: str = "ffplay"):
        self.player = player

    def open(self, payload: bytes, fmt: str) -> AudioHandle:
        fd, path = tempfile.mkstemp(prefix="mira-", suffix=f".{fmt}")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
        except Exception:
            os.remove(path)
            raise
        return FFPlayHandle(path, self.player)


class NullHandle(AudioHandle):
    async def play(self) -> None:
        return None


class NullAudioBackend(AudioBackend):
    def open(self, payload: bytes, fmt: str) -> AudioHandle:
        return NullHandle()

"""
Plays the script: speak a line, wait its delay, move on.

Only one session runs at a time. `stop()` is immediate for audio and the
talking flag; a delay already being waited on finishes, and the loop notices
the cancellation at the next step boundary.
"""
import asyncio
import logging
from typing import Callable, List, Optional

from .models import PlaybackState, Step
from .settings import DEFAULT_VOICE
from .speech import SpeechClient

logger = logging.getLogger(__name__)


class Sequencer:
    def __init__(self, speech: SpeechClient, script_source: Callable[[], List[Step]],
                 voice: str = DEFAULT_VOICE):
        self.speech = speech
        self.script_source = script_source
        self.voice = voice
        self.running = False
        self.cancel_requested = False
        self._talking = False
        self._listeners: List[Callable[[bool], None]] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> PlaybackState:
        return PlaybackState.PLAYING if self.running else PlaybackState.IDLE

    @property
    def talking(self) -> bool:
        return self._talking

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def add_talking_listener(self, listener: Callable[[bool], None]) -> None:
        self._listeners.append(listener)

    def _set_talking(self, value: bool) -> None:
        if value == self._talking:
            return
        self._talking = value
        for listener in self._listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("talking listener failed")

    def start(self) -> Optional[asyncio.Task]:
        if self.running:
            logger.info("Playback already running, ignoring start")
            return None
        sequence = [s for s in self.script_source() if s.is_playable]
        if not sequence:
            logger.info("Nothing to play")
            return None

        self.running = True
        self.cancel_requested = False
        self._task = asyncio.get_running_loop().create_task(self._play(sequence))
        return self._task

    async def _play(self, sequence: List[Step]) -> None:
        logger.info(f"Starting playback of {len(sequence)} steps")
        try:
            for i, step in enumerate(sequence):
                if self.cancel_requested:
                    break
                self._set_talking(True)
                result = await self.speech.speak(step.text, voice=self.voice)
                self._set_talking(False)
                if not result.ok:
                    logger.info(f"Step {i + 1} spoke nothing: {result.error or 'cancelled'}")
                if self.cancel_requested:
                    break
                wait = step.wait_seconds
                if wait > 0:
                    await asyncio.sleep(wait)
        finally:
            self.running = False
            self._set_talking(False)
            logger.info("Playback finished" + (" (stopped)" if self.cancel_requested else ""))

    def stop(self) -> None:
        if self.running:
            self.cancel_requested = True
        self.speech.cancel()
        self._set_talking(False)

import time
import logging
from typing import Callable, Optional

from .animator import AmplitudeAnimator, PulsePair, VisualSink
from .audio import AudioBackend, FFPlayBackend
from .gestures import GestureRouter
from .kv_storage import KVStorage
from .script_book import ScriptBook
from .sequencer import Sequencer
from .speech import SpeechClient

logger = logging.getLogger(__name__)


class MiraController:
    """One "talk to mira" screen: the script, playback, the pulse and the tap surface."""

    def __init__(self, store: Optional[KVStorage] = None, audio: Optional[AudioBackend] = None,
                 sink: Optional[VisualSink] = None, scheduler=None,
                 speech: Optional[SpeechClient] = None, clock: Callable[[], float] = time.monotonic):
        self.store = store or KVStorage()
        self.script = ScriptBook(self.store)
        self.speech = speech or SpeechClient(audio or FFPlayBackend())
        self.sequencer = Sequencer(self.speech, self.script.playable_steps)
        self.sink = sink or PulsePair()
        self.animator = AmplitudeAnimator(self.sink, scheduler)
        self.sequencer.add_talking_listener(self.animator.set_active)
        self.gestures = GestureRouter(self.sequencer, clock)

    async def load(self):
        return await self.script.load()

    @property
    def talking(self) -> bool:
        return self.sequencer.talking

    def tap(self) -> str:
        decision = self.gestures.tap()
        logger.info(f"Tap: {decision}")
        return decision

    def open_menu(self) -> None:
        self.gestures.open_menu()

    def close_menu(self) -> None:
        self.gestures.close_menu()

    def close(self) -> None:
        self.sequencer.stop()
        self.animator.close()

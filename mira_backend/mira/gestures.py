import time
import logging
from typing import Callable

from .sequencer import Sequencer
from .settings import SUPPRESS_MS

logger = logging.getLogger(__name__)


class GestureRouter:
    """Routes taps on the main surface to the sequencer.

    While the menu is open its own taps never reach playback. The tap that
    closes the menu (and anything else within the suppression window) is
    swallowed so it does not immediately restart playback.
    """

    def __init__(self, sequencer: Sequencer, clock: Callable[[], float] = time.monotonic,
                 suppress_window: float = SUPPRESS_MS / 1000):
        self.sequencer = sequencer
        self.clock = clock
        self.suppress_window = suppress_window
        self.menu_open = False
        self._suppress_until = 0.0

    def open_menu(self) -> None:
        self.menu_open = True

    def close_menu(self) -> None:
        self.menu_open = False
        self._suppress_until = self.clock() + self.suppress_window

    def tap(self) -> str:
        if self.menu_open:
            return "menu-open"
        if self.clock() < self._suppress_until:
            logger.debug("Tap suppressed after menu close")
            return "suppressed"

        if self.sequencer.talking or self.sequencer.running:
            self.sequencer.stop()
            return "stop"
        if self.sequencer.start() is None:
            return "empty"
        return "start"

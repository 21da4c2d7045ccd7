"""Talk to mira in a terminal.

Main screen: Enter taps (start/stop playback), `m` opens the script menu,
`q` quits. In the menu: `ls` lists steps, `+ <text>` adds one,
`= <n> <text>` edits a line, `d <n> <seconds>` sets its delay,
`- <n>` deletes it, and Enter closes the menu.
"""

import argparse
import asyncio
import logging
import sys

from .audio import FFPlayBackend, NullAudioBackend
from .controller import MiraController
from .speech import SpeechClient
from .settings import TTS_URL

logger = logging.getLogger(__name__)


def _render(mira: MiraController) -> str:
    lines = []
    for i, s in enumerate(mira.script.steps, 1):
        lines.append(f"{i:>2}. [{s.wait_seconds:g}s] {s.text or '(empty)'}")
    return "\n".join(lines)


def _step_id(mira: MiraController, number: str):
    steps = mira.script.steps
    try:
        return steps[int(number) - 1].id
    except (ValueError, IndexError):
        return None


async def handle_command(mira: MiraController, line: str) -> bool:
    """Apply one line of input; False means quit."""
    line = line.strip()
    if not mira.gestures.menu_open:
        if line == "q":
            return False
        if line == "m":
            mira.open_menu()
            print(_render(mira))
        elif line == "":
            print(mira.tap())
        else:
            print("Enter = tap, m = menu, q = quit")
        return True

    cmd, _, rest = line.partition(" ")
    if cmd == "":
        mira.close_menu()
    elif cmd == "ls":
        print(_render(mira))
    elif cmd == "+":
        await mira.script.add_step(rest)
        print(_render(mira))
    elif cmd in ("=", "d", "-"):
        number, _, value = rest.partition(" ")
        step_id = _step_id(mira, number)
        if step_id is None:
            print(f"no step {number}")
        elif cmd == "=":
            await mira.script.update_step(step_id, text=value)
        elif cmd == "d":
            await mira.script.update_step(step_id, delay=value)
        else:
            await mira.script.delete_step(step_id)
        print(_render(mira))
    else:
        print("ls, + text, = n text, d n seconds, - n, Enter closes the menu")
    return True


async def run(mira: MiraController, stream=sys.stdin) -> None:
    await mira.load()
    loop = asyncio.get_running_loop()
    print("tap to talk (Enter), m = menu, q = quit")
    try:
        while True:
            line = await loop.run_in_executor(None, stream.readline)
            if not line:
                break
            if not await handle_command(mira, line):
                break
    finally:
        mira.close()


def main():
    parser = argparse.ArgumentParser(description="Talk to mira from the terminal")
    parser.add_argument("--tts-url", default=TTS_URL, help="Synthesis endpoint (the /api/tts proxy)")
    parser.add_argument("--mute", action="store_true", help="Skip audio playback")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )

    audio = NullAudioBackend() if args.mute else FFPlayBackend()
    mira = MiraController(speech=SpeechClient(audio, url=args.tts_url))
    asyncio.run(run(mira))


if __name__ == "__main__":
    main()

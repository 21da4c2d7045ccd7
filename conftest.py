import asyncio
import os
import sys

import pytest

# Add the backend to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'mira_backend'))

from mira.audio import AudioBackend, AudioHandle
from mira.kv_storage import KVStorage
from mira.models import SpeakResult


class FakeSpeech:
    """Records what was spoken; `gate` holds each line until it is set"""

    def __init__(self):
        self.spoken = []
        self.fail = set()
        self.raise_on = set()
        self.gate = None
        self.cancels = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def speak(self, text, voice="alloy"):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            self.spoken.append(text)
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            if text in self.raise_on:
                raise RuntimeError(f"boom on {text}")
            if text in self.fail:
                return SpeakResult(ok=False, text=text, error="500: upstream")
            return SpeakResult(ok=True, text=text)
        finally:
            self.in_flight -= 1

    def cancel(self):
        self.cancels += 1


class ManualScheduler:
    """Frame scheduler driven by hand; `requests` counts every frame asked for"""

    def __init__(self, start=0.0):
        self.t = start
        self.requests = 0
        self.cancelled = 0
        self._pending = {}
        self._next = 0

    def now(self):
        return self.t

    def request(self, callback):
        self.requests += 1
        self._next += 1
        self._pending[self._next] = callback
        return self._next

    def cancel(self, handle):
        if self._pending.pop(handle, None) is not None:
            self.cancelled += 1

    @property
    def pending(self):
        return len(self._pending)

    def tick(self, ms=16.0):
        self.t += ms
        callbacks, self._pending = list(self._pending.values()), {}
        for cb in callbacks:
            cb(self.t)

    def run(self, ms=16.0, max_frames=10000):
        frames = 0
        while self._pending and frames < max_frames:
            self.tick(ms)
            frames += 1
        return frames


class FakeHandle(AudioHandle):
    def __init__(self, payload, blocking=False):
        super().__init__()
        self.payload = payload
        self.played = False
        self._done = asyncio.Event()
        if not blocking:
            self._done.set()

    async def play(self):
        self.played = True
        await self._done.wait()

    def finish(self):
        self._done.set()

    def stop(self):
        super().stop()
        self._done.set()


class FakeBackend(AudioBackend):
    def __init__(self, blocking=False):
        self.blocking = blocking
        self.handles = []

    def open(self, payload, fmt):
        handle = FakeHandle(payload, self.blocking)
        self.handles.append(handle)
        return handle


@pytest.fixture
def fake_speech():
    return FakeSpeech()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def blocking_backend():
    return FakeBackend(blocking=True)


@pytest.fixture
def store(tmp_path):
    return KVStorage(rest_url="", rest_token="", path=str(tmp_path / "store.json"))

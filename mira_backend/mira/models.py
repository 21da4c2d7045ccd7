import math
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _new_id() -> str:
    return str(uuid.uuid4())


class Step(BaseModel):
    id: str = Field(default_factory=_new_id)
    text: str = ""
    delay: float = 0

    @field_validator("text", mode="before")
    @classmethod
    def _text_or_empty(cls, v):
        return "" if v is None else v

    @field_validator("delay", mode="before")
    @classmethod
    def _parse_delay(cls, v):
        # Whatever the editor typed is kept; it is only sanitised when waited on
        if v is None or v == "":
            return 0
        try:
            return float(v)
        except (TypeError, ValueError):
            return math.nan

    @property
    def is_playable(self) -> bool:
        return bool(self.text.strip())

    @property
    def wait_seconds(self) -> float:
        if math.isnan(self.delay) or math.isinf(self.delay) or self.delay < 0:
            return 0.0
        return self.delay


class SpeechRequest(BaseModel):
    text: Optional[str] = None
    voice: str = "alloy"
    format: str = "mp3"


class SpeakResult(BaseModel):
    ok: bool
    text: str = ""
    error: Optional[str] = None
    cancelled: bool = False


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"

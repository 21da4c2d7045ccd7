"""
The voice script: an ordered list of steps the user edits in the menu.

The whole list is written back to the storage slot after every change and
read once when the book is loaded.
"""
import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from .kv_storage import KVStorage
from .models import Step
from .settings import SCRIPT_KEY

logger = logging.getLogger(__name__)


def parse_steps(raw: Optional[str]) -> Optional[List[Step]]:
    """Decode a stored script, or None if it is missing or corrupt."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            return None
        steps = [Step.model_validate(item) for item in data]
    except (ValueError, TypeError, ValidationError) as e:
        logger.warning(f"Stored script is corrupt, using default: {e}")
        return None
    return reissue_duplicate_ids(steps)


def duplicate_ids(steps: List[Step]) -> List[str]:
    seen, dupes = set(), []
    for s in steps:
        if s.id in seen and s.id not in dupes:
            dupes.append(s.id)
        seen.add(s.id)
    return dupes


def reissue_duplicate_ids(steps: List[Step]) -> List[Step]:
    """Keep the first step with a given id; later ones get a fresh id."""
    seen, out = set(), []
    for s in steps:
        if s.id in seen:
            fresh = Step(text=s.text, delay=s.delay)
            logger.warning(f"Duplicate step id {s.id}, reissued as {fresh.id}")
            s = fresh
        seen.add(s.id)
        out.append(s)
    return out


def dump_steps(steps: List[Step]) -> str:
    return json.dumps([s.model_dump() for s in steps])


class ScriptBook:
    def __init__(self, store: KVStorage, key: str = SCRIPT_KEY):
        self.store = store
        self.key = key
        self._steps: List[Step] = [Step()]

    async def load(self) -> List[Step]:
        steps = parse_steps(await self.store.get(self.key))
        self._steps = steps if steps is not None else [Step()]
        logger.info(f"Loaded script with {len(self._steps)} steps")
        return self.steps

    @property
    def steps(self) -> List[Step]:
        return [s.model_copy() for s in self._steps]

    def playable_steps(self) -> List[Step]:
        return [s.model_copy() for s in self._steps if s.is_playable]

    async def save(self) -> bool:
        return await self.store.set(self.key, dump_steps(self._steps))

    async def replace(self, steps: List[Step]) -> bool:
        dupes = duplicate_ids(steps)
        if dupes:
            raise ValueError(f"duplicate step ids: {', '.join(dupes)}")
        self._steps = [s.model_copy() for s in steps]
        return await self.save()

    async def add_step(self, text: str = "", delay: float = 0) -> Step:
        step = Step(text=text, delay=delay)
        self._steps.append(step)
        await self.save()
        return step.model_copy()

    async def update_step(self, step_id: str, **patch) -> Optional[Step]:
        for i, step in enumerate(self._steps):
            if step.id == step_id:
                patch.pop("id", None)
                self._steps[i] = Step.model_validate({**step.model_dump(), **patch})
                await self.save()
                return self._steps[i].model_copy()
        logger.warning(f"No step with id {step_id} to update")
        return None

    async def delete_step(self, step_id: str) -> bool:
        remaining = [s for s in self._steps if s.id != step_id]
        if len(remaining) == len(self._steps):
            logger.warning(f"No step with id {step_id} to delete")
            return False
        self._steps = remaining
        await self.save()
        return True

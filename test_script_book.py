"""
Script persistence: local file slot, KV REST slot, and the editor operations
"""
import asyncio
import json
import math

import httpx
import pytest

from mira.kv_storage import KVStorage
from mira.models import Step
from mira.script_book import ScriptBook, dump_steps, parse_steps


def test_load_without_saved_script_gives_one_empty_step(store):
    book = ScriptBook(store)
    steps = asyncio.run(book.load())
    assert len(steps) == 1
    assert steps[0].text == ""
    assert steps[0].delay == 0
    assert steps[0].id


def test_corrupt_or_wrong_shape_falls_back(store):
    for raw in ("{not json", json.dumps({"text": "x"}), json.dumps([{"text": 5, "delay": []}])):
        asyncio.run(store.set("scriptItems", raw))
        steps = asyncio.run(ScriptBook(store).load())
        assert len(steps) == 1 and steps[0].text == ""


def test_edits_persist_and_reload_in_order(store):
    async def scenario():
        book = ScriptBook(store)
        await book.load()
        first = book.steps[0]
        await book.update_step(first.id, text="hello", delay="1.5")
        await book.add_step("second line", 0)
        third = await book.add_step()
        await book.update_step(third.id, text="third", delay=2)
        return book

    book = asyncio.run(scenario())
    reloaded = asyncio.run(ScriptBook(store).load())
    assert [(s.text, s.delay) for s in reloaded] == [("hello", 1.5), ("second line", 0), ("third", 2)]
    assert [s.id for s in reloaded] == [s.id for s in book.steps]


def test_ids_are_unique_and_survive_updates(store):
    async def scenario():
        book = ScriptBook(store)
        await book.load()
        for _ in range(5):
            await book.add_step()
        target = book.steps[2]
        updated = await book.update_step(target.id, text="x", id="hijack")
        return book, target, updated

    book, target, updated = asyncio.run(scenario())
    ids = [s.id for s in book.steps]
    assert len(set(ids)) == len(ids) == 6
    assert updated.id == target.id


def test_delete_and_unknown_ids(store):
    async def scenario():
        book = ScriptBook(store)
        await book.load()
        keep = await book.add_step("keep")
        drop = await book.add_step("drop")
        assert await book.delete_step(drop.id)
        assert not await book.delete_step("missing")
        assert await book.update_step("missing", text="x") is None
        return book, keep

    book, keep = asyncio.run(scenario())
    assert [s.text for s in book.steps] == ["", "keep"]
    reloaded = asyncio.run(ScriptBook(store).load())
    assert [s.id for s in reloaded][-1] == keep.id


def test_playable_steps_is_a_filtered_copy(store):
    async def scenario():
        book = ScriptBook(store)
        await book.replace([Step(text="a"), Step(text="  "), Step(text="b", delay=1)])
        return book

    book = asyncio.run(scenario())
    snapshot = book.playable_steps()
    assert [s.text for s in snapshot] == ["a", "b"]
    snapshot[0].text = "mutated"
    assert book.steps[0].text == "a"
    assert len(book.steps) == 3


def test_unparseable_delay_survives_a_round_trip():
    steps = parse_steps(dump_steps([Step(text="x", delay="abc")]))
    assert math.isnan(steps[0].delay)
    assert steps[0].wait_seconds == 0


def test_file_slot_keeps_other_keys(store):
    async def scenario():
        await store.set("a", "1")
        await store.set("b", "2")
        return await store.get("a"), await store.get("b"), await store.get("c")

    assert asyncio.run(scenario()) == ("1", "2", None)


def test_kv_rest_slot():
    data = {}
    calls = []

    def handler(request):
        calls.append((request.url.path, request.headers["authorization"]))
        body = json.loads(request.content)
        if request.url.path == "/set":
            data[body[0]] = body[1]
            return httpx.Response(200, json={"result": "OK"})
        return httpx.Response(200, json={"result": data.get(body[0])})

    kv = KVStorage(rest_url="http://kv.test", rest_token="tok", transport=httpx.MockTransport(handler))
    assert kv.enabled

    async def scenario():
        book = ScriptBook(kv)
        await book.load()
        await book.add_step("from kv", 3)
        return await ScriptBook(kv).load()

    steps = asyncio.run(scenario())
    assert [(s.text, s.delay) for s in steps] == [("", 0), ("from kv", 3)]
    assert ("/set", "Bearer tok") in calls


def test_kv_rest_failure_is_reported_not_raised():
    def handler(request):
        return httpx.Response(503, text="unavailable")

    kv = KVStorage(rest_url="http://kv.test", rest_token="tok", transport=httpx.MockTransport(handler))

    async def scenario():
        return await kv.set("k", "v"), await kv.get("k")

    assert asyncio.run(scenario()) == (False, None)


def test_duplicate_ids_in_storage_are_reissued(store):
    raw = json.dumps([{"id": "x", "text": "a"}, {"id": "x", "text": "b"}])

    async def scenario():
        await store.set("scriptItems", raw)
        book = ScriptBook(store)
        await book.load()
        assert await book.delete_step("x")
        return book

    book = asyncio.run(scenario())
    # only the first "x" goes; the second line survives under a fresh id
    assert [s.text for s in book.steps] == ["b"]
    assert book.steps[0].id != "x"


def test_replace_rejects_duplicate_ids(store):
    async def scenario():
        book = ScriptBook(store)
        await book.load()
        before = book.steps
        with pytest.raises(ValueError, match="x"):
            await book.replace([Step(id="x", text="a"), Step(id="x", text="b")])
        return book, before

    book, before = asyncio.run(scenario())
    assert [s.id for s in book.steps] == [s.id for s in before]

"""Tests for Session: mutations, recompute, persistence and error reporting."""

import asyncio
import json

from jfs.errors import (
    CompileError,
    FetchError,
    GroupIndexError,
    StepRuntimeError,
    UnknownStepError,
)
from jfs.models import StepKind

URL = "https://example.com/items.json"
ITEMS = [{"x": 1}, {"x": 2}, {"x": 3}]


def run_async(coro):
    return asyncio.run(coro)


def test_add_source_fetches_and_displays(session, loader, viewer):
    loader.documents[URL] = ITEMS

    async def scenario():
        source = session.add_source(URL)
        assert session.state.content == []
        await session.wait()
        return source

    source = run_async(scenario())
    assert loader.calls == [URL]
    assert session.state.get_content(source.id).data == ITEMS
    assert viewer.last == [ITEMS]


def test_filter_map_scenario(session, loader, viewer):
    loader.documents[URL] = ITEMS

    async def scenario():
        session.add_source(URL)
        await session.wait()
        session.add_filter("select", "return 0")
        session.add_filter("filter", "return e['x'] > 1")
        session.add_filter("map", "return e['x'] * 10")

    run_async(scenario())
    assert viewer.last == [20, 30]
    assert session.errors == []


def test_every_mutation_persists(session, storage):
    session.add_filter("map", "return e")
    record = json.loads(storage.get("jfs"))
    assert record["filters"][0][0]["transformBody"] == "return e"

    session.add_group()
    assert json.loads(storage.get("jfs"))["active"] == 1


def test_start_loads_state_and_fetches_all_sources(session, loader, viewer, stored_state):
    stored_state(
        {
            "sources": [{"id": "a", "url": "https://a"}, {"id": "b", "url": "https://b"}],
            "filters": [[{"id": "s", "kind": "map", "transformBody": "return e['n']"}]],
            "active": 0,
        }
    )
    loader.documents.update({"https://a": {"n": 1}, "https://b": {"n": 2}})

    async def scenario():
        # b resolves first; the display still lists content in source order
        gate = loader.gate("https://a")
        task = asyncio.ensure_future(session.start())
        await asyncio.sleep(0.01)
        assert viewer.last == [2]
        gate.set()
        await task

    run_async(scenario())
    assert sorted(loader.calls) == ["https://a", "https://b"]
    assert viewer.last == [1, 2]


def test_start_with_no_sources_displays_empty_list(session, viewer):
    run_async(session.start())
    assert viewer.values == [[]]


def test_start_reports_broken_steps(session, stored_state):
    stored_state(
        {
            "sources": [],
            "filters": [[{"id": "bad", "kind": "map", "transformBody": "return ("}]],
            "active": 0,
        }
    )
    run_async(session.start())
    assert len(session.errors) == 1
    assert isinstance(session.errors[0], CompileError)
    assert session.errors[0].step_id == "bad"


def test_fetch_error_is_reported_and_source_kept(session, loader, viewer):
    async def scenario():
        session.add_source("https://missing")
        await session.wait()

    run_async(scenario())
    assert len(session.errors) == 1
    assert isinstance(session.errors[0], FetchError)
    assert len(session.state.sources) == 1
    assert session.state.content == []


def test_late_fetch_for_removed_source_is_discarded(session, loader, viewer):
    loader.documents[URL] = ITEMS

    async def scenario():
        gate = loader.gate(URL)
        source = session.add_source(URL)
        session.remove_source(source.id)
        gate.set()
        await session.wait()

    run_async(scenario())
    assert session.state.content == []
    assert session.state.sources == []
    assert session.errors == []
    assert viewer.last == []


def test_edit_source_refetches(session, loader, viewer):
    loader.documents.update({"https://a": [1], "https://b": [2]})

    async def scenario():
        source = session.add_source("https://a")
        await session.wait()
        session.edit_source(source.id, "https://b")
        await session.wait()

    run_async(scenario())
    assert viewer.last == [[2]]


def test_step_runtime_error_keeps_previous_result(session, store, viewer):
    source = store.add_source("a")
    store.set_content(source.id, 1)
    session.recompute()
    assert viewer.values == [[1]]

    session.add_filter("map", "raise ValueError('x')")

    assert viewer.values == [[1]]
    assert len(session.errors) == 1
    assert isinstance(session.errors[0], StepRuntimeError)


def test_out_of_range_group_is_reported(session, store, viewer):
    source = store.add_source("a")
    store.set_content(source.id, {"a": 1})
    session.add_group()
    shown = list(viewer.values)

    assert session.set_active_group(4) is None

    assert session.state.active == 0
    assert viewer.values == shown
    assert len(session.errors) == 1
    assert isinstance(session.errors[0], GroupIndexError)


def test_select_halt_keeps_previous_result(session, store, viewer):
    source = store.add_source("a")
    store.set_content(source.id, {"a": 5})
    select = session.add_filter("select", "return 0")
    assert viewer.last == {"a": 5}

    session.add_filter("select", "return 'a'")
    assert viewer.last == 5

    session.add_filter("select", "return 'b'")
    count = len(viewer.values)
    session.set_filter_kind(select.id, StepKind.MAP)
    assert len(viewer.values) == count
    assert session.errors == []


def test_switching_groups_recomputes(session, store, viewer):
    source = store.add_source("a")
    store.set_content(source.id, [1, 2, 3])
    session.add_filter("select", "return 0")
    session.add_filter("map", "return e * 2")
    session.add_group()
    assert viewer.last == [[1, 2, 3]]

    session.set_active_group(0)
    assert viewer.last == [2, 4, 6]


def test_remove_group_really_deletes(session, storage):
    session.add_filter()
    session.add_group()
    session.remove_group(0)
    assert len(session.state.groups) == 1
    assert json.loads(storage.get("jfs"))["filters"] == [[]]


def test_debounced_edit_compiles_once(session, store, viewer):
    source = store.add_source("a")
    store.set_content(source.id, 3)
    step = session.add_filter("map", "return e")
    compiled = []
    original = session.recompile

    def spy(filter_id, text):
        compiled.append(text)
        return original(filter_id, text)

    session.recompile = spy

    async def scenario():
        for text in ("return e *", "return e * 1", "return e * 10"):
            session.edit_step_source(step.id, text)
        assert compiled == []
        await asyncio.sleep(0.05)

    run_async(scenario())
    assert compiled == ["return e * 10"]
    assert viewer.last == [30]
    assert session.errors == []


def test_compile_error_keeps_last_good_transform(session, storage):
    step = session.add_filter("map", "return e")

    assert session.recompile(step.id, "return (") is False

    assert step.body == "return e"
    assert isinstance(session.errors[-1], CompileError)
    assert session.errors[-1].step_id == step.id
    assert "return (" not in storage.get("jfs")

    assert session.recompile(step.id, "return e + 1") is True
    assert step.transform(1) == 2


def test_removed_step_drops_pending_edit(session):
    step = session.add_filter("map", "return e")

    async def scenario():
        session.edit_step_source(step.id, "return 1")
        session.remove_filter(step.id)
        assert len(session.debouncer) == 0
        await asyncio.sleep(0.05)

    run_async(scenario())
    assert session.errors == []


def test_group_switch_applies_pending_edits(session):
    step = session.add_filter("map", "return e")

    async def scenario():
        session.edit_step_source(step.id, "return e + 1")
        session.add_group()

    run_async(scenario())
    assert step.body == "return e + 1"


def test_rejected_group_switch_leaves_pending_edit_alone(session, storage):
    step = session.add_filter("map", "return e")
    stored = storage.get("jfs")

    async def scenario():
        session.edit_step_source(step.id, "return e + 1")
        assert session.set_active_group(9) is None
        assert session.remove_group(9) is None
        assert session.debouncer.pending(step.id)
        assert step.body == "return e"
        assert storage.get("jfs") == stored
        session.debouncer.cancel(step.id)

    run_async(scenario())
    assert [type(e) for e in session.errors] == [GroupIndexError, GroupIndexError]


def test_unknown_step_is_reported(session):
    assert session.remove_filter("missing") is None
    assert isinstance(session.errors[0], UnknownStepError)


def test_attach_editor_is_transient(session, storage):
    step = session.add_filter()
    before = storage.get("jfs")
    session.attach_editor(step.id, object())
    assert step.editor is not None
    assert storage.get("jfs") == before


def test_on_error_callback(store, loader, viewer):
    from jfs.session import Session

    seen = []
    session = Session(store, loader=loader, viewer=viewer, on_error=seen.append)
    session.set_active_group(1)
    assert len(seen) == 1

"""Tests for the pipeline state models and their persisted shape."""

from jfs.codec import decode
from jfs.models import ContentItem, Filter, PipelineState, Source, StepKind


def test_new_filter_is_identity_select():
    step = Filter()
    assert step.kind == StepKind.SELECT
    assert step.body == "return e"
    assert step.transform({"a": 1}) == {"a": 1}


def test_record_replaces_transform_with_body_and_drops_editor():
    step = Filter(id="s1", kind="map", transform=decode("return e['x']"), editor=object())
    state = PipelineState(
        sources=[Source(id="src", url="https://example.com/a.json")],
        content=[ContentItem(id="src", data=[1])],
        groups=[[step]],
        active=0,
    )

    assert state.to_record() == {
        "sources": [{"id": "src", "url": "https://example.com/a.json"}],
        "filters": [[{"id": "s1", "kind": "map", "transformBody": "return e['x']"}]],
        "active": 0,
    }


def test_record_round_trip_rebuilds_callables():
    record = {
        "sources": [],
        "filters": [[{"id": "s1", "kind": "map", "transformBody": "return e['x']"}]],
        "active": 0,
    }
    state = PipelineState.model_validate(record)
    assert state.groups[0][0].transform({"x": 5}) == 5
    assert state.to_record() == record


def test_legacy_single_source_record_is_migrated():
    state = PipelineState.model_validate(
        {
            "source": "https://example.com/data.json",
            "filters": [[{"id": "a", "type": "filter", "func": "return e > 1"}]],
            "active": 0,
        }
    )
    assert [s.url for s in state.sources] == ["https://example.com/data.json"]
    step = state.groups[0][0]
    assert step.kind == StepKind.FILTER
    assert step.body == "return e > 1"


def test_legacy_record_without_source():
    state = PipelineState.model_validate({"filters": None, "active": 0})
    assert state.sources == []
    assert state.groups == []


def test_active_group_tolerates_missing_group():
    state = PipelineState()
    assert state.active_group is None
    state.groups.append([])
    assert state.active_group == []


def test_content_values_follow_source_order():
    state = PipelineState(
        sources=[Source(id="a", url="a"), Source(id="b", url="b"), Source(id="c", url="c")],
        content=[ContentItem(id="c", data=3), ContentItem(id="a", data=1)],
    )
    assert state.content_values() == [1, 3]


def test_kind_assignment_is_validated():
    step = Filter()
    step.kind = "flatmap"
    assert step.kind is StepKind.FLATMAP

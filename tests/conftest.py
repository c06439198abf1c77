"""Pytest configuration and shared fixtures."""

import asyncio
import copy
import json
import logging

import pytest
from click.testing import CliRunner

from jfs.cli import cli
from jfs.errors import FetchError
from jfs.session import Session
from jfs.storage import MemoryStorage
from jfs.store import PipelineStore


class RecordingViewer:
    """Result viewer that remembers every value it was given."""

    def __init__(self):
        self.values = []

    def set(self, value):
        self.values.append(value)

    @property
    def last(self):
        return self.values[-1]


class FakeLoader:
    """Source loader serving canned documents.

    ``documents`` maps URL to a JSON value or an exception to raise.
    ``gates`` maps URL to an asyncio.Event the fetch waits on.
    """

    def __init__(self, documents=None):
        self.documents = dict(documents or {})
        self.gates = {}
        self.calls = []

    def gate(self, url):
        event = asyncio.Event()
        self.gates[url] = event
        return event

    async def fetch(self, url):
        self.calls.append(url)
        gate = self.gates.get(url)
        if gate is not None:
            await gate.wait()
        await asyncio.sleep(0)
        if url not in self.documents:
            raise FetchError(url, "404 Not Found")
        value = self.documents[url]
        if isinstance(value, Exception):
            raise value
        return copy.deepcopy(value)


@pytest.fixture(autouse=True)
def reset_jfs_logging():
    """Drop handlers the CLI attached so they don't outlive CliRunner streams."""
    yield
    logger = logging.getLogger("jfs")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return PipelineStore(storage)


@pytest.fixture
def viewer():
    return RecordingViewer()


@pytest.fixture
def loader():
    return FakeLoader()


@pytest.fixture
def session(store, loader, viewer):
    """Session wired to in-memory storage, a fake loader and a recording viewer."""
    return Session(store, loader=loader, viewer=viewer, debounce=0.01)


@pytest.fixture
def stored_state(storage):
    """Write a persisted record into storage before the session loads it."""

    def _write(record):
        storage.set("jfs", json.dumps(record))

    return _write


@pytest.fixture
def cli_runner():
    """Provide Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def jfs_home(tmp_path):
    """Provide a temporary jfs home directory."""
    home = tmp_path / "jfs_home"
    home.mkdir()
    return home


@pytest.fixture
def invoke(cli_runner, jfs_home):
    """Invoke the CLI against the temporary home.

    Usage:
        result = invoke(["step", "add", "--kind", "map"])
        json.loads(result.stdout)
    """

    def _invoke(args, input_data=None):
        return cli_runner.invoke(cli, ["--home", str(jfs_home), *args], input=input_data)

    return _invoke


@pytest.fixture
def items_file(tmp_path):
    """A local JSON document usable as a source."""
    path = tmp_path / "items.json"
    path.write_text(json.dumps([{"x": 1}, {"x": 2}, {"x": 3}]))
    return path

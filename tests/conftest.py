"""Shared test fixtures."""

from __future__ import annotations

import io
import os
import sys
import textwrap

import pytest

from pipeshell.config import AppConfig, LoggingConfig, ShellConfig, reset_config
from pipeshell.services.executor import PipelineExecutor
from pipeshell.session import Session
from pipeshell.storage.history import HistoryStore

PRODUCER = """
    import sys
    sys.stdout.buffer.write(bytes(range(256)) * 16)
"""

CAT = """
    import sys
    sys.stdout.buffer.write(sys.stdin.buffer.read())
"""

# Copies stdin to stdout and keeps a copy of what it read in argv[1].
RECORDER = """
    import sys
    data = sys.stdin.buffer.read()
    with open(sys.argv[1], "wb") as f:
        f.write(data)
    sys.stdout.buffer.write(data)
"""

EXIT_WITH = """
    import sys
    sys.exit(int(sys.argv[1]))
"""

PWD = """
    import os, sys
    sys.stdout.write(os.getcwd())
"""

KILL_SELF = """
    import os, signal
    os.kill(os.getpid(), signal.SIGTERM)
"""

EXPECTED_BYTES = bytes(range(256)) * 16


class Streams:
    """Files standing in for the interpreter's standard streams."""

    def __init__(self, tmp_path) -> None:
        self.stdout_path = tmp_path / "stdout.bin"
        self.stdin = open(os.devnull, "rb")
        self.stdout = open(self.stdout_path, "wb")
        self.out = io.StringIO()
        self.err = io.StringIO()

    def output(self) -> bytes:
        self.stdout.flush()
        return self.stdout_path.read_bytes()

    def close(self) -> None:
        self.stdin.close()
        self.stdout.close()


@pytest.fixture(autouse=True)
def _reset_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def app_config(tmp_path):
    """Create a test configuration."""
    return AppConfig(
        shell=ShellConfig(prompt="$", history_max_items=5, arg_max_count=8),
        logging=LoggingConfig(level="DEBUG", file=str(tmp_path / "test.log")),
    )


@pytest.fixture
def history():
    return HistoryStore(max_items=5)


@pytest.fixture
def streams(tmp_path):
    s = Streams(tmp_path)
    yield s
    s.close()


@pytest.fixture
def executor(app_config, history, streams):
    return PipelineExecutor(
        app_config,
        history,
        stdin=streams.stdin,
        stdout=streams.stdout,
        out=streams.out,
        err=streams.err,
    )


@pytest.fixture
def session(app_config, streams):
    return Session(
        app_config,
        stdin=streams.stdin,
        stdout=streams.stdout,
        out=streams.out,
        err=streams.err,
    )


@pytest.fixture
def stage(tmp_path):
    """Write a Python script and return the command text that runs it."""
    if any(c.isspace() for c in f"{sys.executable}{tmp_path}"):
        pytest.skip("interpreter or tmp path contains whitespace")

    def make(name: str, source: str) -> str:
        path = tmp_path / f"{name}.py"
        path.write_text(textwrap.dedent(source))
        return f"{sys.executable} {path}"

    return make

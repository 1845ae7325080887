"""Tests for the interactive session loop."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from conftest import CAT, EXPECTED_BYTES, PRODUCER, PWD
from pipeshell.services.executor import FatalError


def reader(lines):
    """Line reader that returns each line in turn, then end-of-input."""
    pending = list(lines)

    def read_line():
        if not pending:
            return None
        line = pending.pop(0)
        if isinstance(line, BaseException):
            raise line
        return line

    return read_line


class TestHandleLine:
    @pytest.mark.parametrize("line", ["", "   ", "\t", "|", "| /bin/cat"])
    def test_ignored_lines(self, session, line):
        with patch.object(session.executor, "execute") as execute:
            assert session.handle_line(line) is None
        execute.assert_not_called()
        assert len(session.history) == 0

    def test_records_and_executes(self, session, streams, stage):
        line = stage("producer", PRODUCER)
        result = session.handle_line(line)
        assert result.exit_code == 0
        assert session.history.list_entries() == [(0, line)]
        assert streams.output() == EXPECTED_BYTES

    def test_history_listing(self, session, streams):
        session.handle_line("cd")
        session.handle_line("exit")
        session.handle_line("history")
        assert streams.out.getvalue() == "0 cd\n1 exit\n"

    def test_history_listing_not_recorded(self, session):
        session.handle_line("history")
        session.handle_line("history -c")
        session.handle_line("history 0")
        assert len(session.history) == 0

    def test_history_clear(self, session, streams):
        session.handle_line("cd")
        session.handle_line("history -c")
        session.handle_line("history")
        assert streams.out.getvalue() == ""

    def test_pipeline_with_history_recorded_but_rejected(self, session, streams):
        result = session.handle_line("history | /bin/cat")
        assert result.exit_code == 1
        assert session.history.list_entries() == [(0, "history | /bin/cat")]
        assert "error: no builtins in pipe" in streams.err.getvalue()

    def test_recall_pipeline(self, session, streams, stage):
        line = f"{stage('producer', PRODUCER)}|{stage('cat', CAT)}"
        session.handle_line(line)
        result = session.handle_line("history 0")
        assert result.exit_code == 0
        assert result.spawned == 2
        assert session.history.list_entries() == [(0, line)]
        assert streams.output() == EXPECTED_BYTES * 2

    def test_recall_missing_entry(self, session, streams):
        result = session.handle_line("history 4")
        assert result.exit_code == 1
        assert streams.err.getvalue().startswith("error: history: no entry at offset 4")

    def test_eviction_through_session(self, session):
        for i in range(7):
            session.handle_line(f"cd /nonexistent/{i}")
        assert len(session.history) == 5
        assert session.history.get(0) == "cd /nonexistent/2"

    def test_cd_affects_later_commands(self, session, streams, stage, tmp_path, monkeypatch):
        pwd = stage("pwd", PWD)
        target = tmp_path / "work"
        target.mkdir()
        monkeypatch.chdir(tmp_path)
        assert session.handle_line(f"cd {target}").exit_code == 0
        session.handle_line(pwd)
        assert os.path.realpath(streams.output().decode()) == os.path.realpath(target)

    def test_cd_without_argument_keeps_directory(self, session, streams, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = session.handle_line("cd")
        assert result.exit_code == 1
        assert os.getcwd() == str(tmp_path)
        assert streams.err.getvalue() == "error: cd: missing argument\n"

    def test_last_status(self, session):
        session.handle_line("cd")
        assert session.last_status == 1


class TestRun:
    def test_end_of_input(self, session):
        assert session.run(reader(["cd"])) == 0

    def test_exit_stops_loop(self, session):
        with patch.object(session.executor, "execute", wraps=session.executor.execute) as execute:
            status = session.run(reader(["cd", "exit", "history"]))
        assert status == 0
        assert execute.call_count == 2

    def test_recalled_exit_stops_loop(self, session):
        session.history.record("exit")
        with patch.object(session.executor, "execute", wraps=session.executor.execute) as execute:
            status = session.run(reader(["history 0", "cd"]))
        assert status == 0
        assert execute.call_count == 1

    def test_history_cleared_on_exit(self, session):
        session.run(reader(["cd", "cd"]))
        assert len(session.history) == 0

    def test_keyboard_interrupt_continues(self, session, streams):
        status = session.run(reader([KeyboardInterrupt(), "history", "cd"]))
        assert status == 0
        assert streams.err.getvalue().startswith("\n")
        assert "missing argument" in streams.err.getvalue()

    def test_errors_do_not_stop_loop(self, session, streams):
        status = session.run(reader(["/nonexistent/a", "cd", "history abc", "exit"]))
        assert status == 0
        assert streams.err.getvalue().count("error: ") == 3

    def test_fatal_error(self, session, streams):
        with patch.object(session.executor, "execute", side_effect=FatalError("unable to create pipe: Too many open files")):
            status = session.run(reader(["/bin/cat | /bin/cat", "cd"]))
        assert status == 1
        assert streams.err.getvalue() == "error: unable to create pipe: Too many open files\n"
        assert len(session.history) == 0

    def test_memory_error(self, session, streams):
        with patch.object(session.executor, "execute", side_effect=MemoryError()):
            status = session.run(reader(["/bin/cat"]))
        assert status == 1
        assert streams.err.getvalue() == "error: memory alloc error\n"

    def test_embedded_null_does_not_stop_loop(self, session, streams, stage):
        status = session.run(reader([f"{stage('cat', CAT)} a\x00b", "cd", "exit"]))
        assert status == 0
        assert streams.err.getvalue().count("error: ") == 2


class TestRunLine:
    def test_returns_status(self, session):
        assert session.run_line("cd") == 1
        assert session.run_line("   ") == 0

    def test_fatal_error(self, session, streams):
        with patch.object(session.executor, "execute", side_effect=FatalError("unable to create pipe: Too many open files")):
            status = session.run_line("/bin/cat | /bin/cat")
        assert status == 1
        assert streams.err.getvalue() == "error: unable to create pipe: Too many open files\n"
        assert len(session.history) == 0

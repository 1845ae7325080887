"""In-process builtin commands: exit, cd and history."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Callable, TextIO

from pipeshell.services.tokenizer import ARG_MAX_COUNT, parse_pipeline
from pipeshell.storage.history import CLEAR_FLAG, HistoryStore, parse_index
from pipeshell.storage.models import Command, ExecutionResult, Pipeline
from pipeshell.utils.formatting import format_error, format_history_entry

logger = logging.getLogger(__name__)

BUILTIN_NAMES = frozenset({"exit", "cd", "history"})

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class BuiltinAction(Enum):
    NOT_BUILTIN = "not_builtin"
    EXIT = "exit"
    HANDLED = "handled"


@dataclass
class BuiltinResult:
    """Outcome of offering a command to the dispatcher."""

    action: BuiltinAction
    exit_code: int = EXIT_SUCCESS


NOT_BUILTIN = BuiltinResult(BuiltinAction.NOT_BUILTIN)


def is_builtin(command: Command) -> bool:
    return command.program in BUILTIN_NAMES


class BuiltinDispatcher:
    """Recognize and run builtins inside the interpreter process.

    History recall goes back through ``execute``, the executor's own entry
    point, so a recalled line behaves exactly as if it had been typed.
    """

    def __init__(
        self,
        history: HistoryStore,
        execute: Callable[[Pipeline], ExecutionResult],
        out: TextIO | None = None,
        err: TextIO | None = None,
        arg_max_count: int = ARG_MAX_COUNT,
    ) -> None:
        self.history = history
        self.execute = execute
        self._out = out
        self._err = err
        self.arg_max_count = arg_max_count

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err or sys.stderr

    def error(self, message: str) -> None:
        self.err.write(format_error(message))
        self.err.flush()

    def try_handle(self, pipeline: Pipeline, command: Command) -> BuiltinResult:
        """Run ``command`` if it is a builtin, otherwise return NOT_BUILTIN."""
        if not is_builtin(command):
            return NOT_BUILTIN

        logger.debug("Builtin: %s (from %r)", command.arguments, pipeline.line)
        if command.program == "exit":
            return BuiltinResult(BuiltinAction.EXIT)
        if command.program == "cd":
            return BuiltinResult(BuiltinAction.HANDLED, self._cd(command))
        return self._history(command)

    def _cd(self, command: Command) -> int:
        if len(command.arguments) < 2:
            self.error("cd: missing argument")
            return EXIT_FAILURE

        path = command.arguments[1]
        try:
            os.chdir(path)
        except OSError as e:
            self.error(f"cd: unable to change dir: {e.strerror}: {path}")
            return EXIT_FAILURE

        logger.info("Working directory: %s", os.getcwd())
        return EXIT_SUCCESS

    def _history(self, command: Command) -> BuiltinResult:
        if len(command.arguments) == 1:
            for index, text in self.history.list_entries():
                self.out.write(format_history_entry(index, text))
            self.out.flush()
            return BuiltinResult(BuiltinAction.HANDLED)

        argument = command.arguments[1]
        if argument == CLEAR_FLAG:
            self.history.clear()
            return BuiltinResult(BuiltinAction.HANDLED)

        offset = parse_index(argument)
        if offset is None:
            self.error(f"history: cannot convert to number: {argument}")
            return BuiltinResult(BuiltinAction.HANDLED, EXIT_FAILURE)

        line = self.history.get(offset)
        if line is None:
            self.error(f"history: no entry at offset {offset} ({len(self.history)} items)")
            return BuiltinResult(BuiltinAction.HANDLED, EXIT_FAILURE)

        logger.info("Recalling history entry %d: %s", offset, line)
        result = self.execute(parse_pipeline(line, self.arg_max_count))
        if result.exit_requested:
            return BuiltinResult(BuiltinAction.EXIT, result.exit_code)
        return BuiltinResult(BuiltinAction.HANDLED, result.exit_code)

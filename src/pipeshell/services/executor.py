"""Pipeline executor: wires stages together with pipes and runs them."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import IO, TextIO, Union

from pipeshell.config import AppConfig
from pipeshell.services.builtins import BuiltinAction, BuiltinDispatcher, is_builtin
from pipeshell.storage.history import HistoryStore
from pipeshell.storage.models import Command, ExecutionResult, Pipeline
from pipeshell.utils.formatting import (
    describe_exit_code,
    format_warning,
    normalize_returncode,
)
from pipeshell.utils.system import resolve_program

logger = logging.getLogger(__name__)

STDIN_FILENO = 0
STDOUT_FILENO = 1

NOT_FOUND = 127
NOT_EXEC = 126

Stream = Union[int, IO[bytes], IO[str]]


class FatalError(RuntimeError):
    """Resource creation failed and the interpreter cannot continue."""


def _fileno(stream: Stream) -> int:
    return stream if isinstance(stream, int) else stream.fileno()


class PipelineExecutor:
    """Execute parsed pipelines: builtins in-process, everything else as child processes."""

    def __init__(
        self,
        config: AppConfig,
        history: HistoryStore,
        *,
        stdin: Stream = STDIN_FILENO,
        stdout: Stream = STDOUT_FILENO,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self.config = config
        self.stdin = stdin
        self.stdout = stdout
        self.builtins = BuiltinDispatcher(
            history,
            self.execute,
            out=out,
            err=err,
            arg_max_count=config.shell.arg_max_count,
        )

    def execute(self, pipeline: Pipeline) -> ExecutionResult:
        """Execute a pipeline and return its status and whether exit was requested."""
        if any(command.is_empty for command in pipeline):
            self.builtins.error("empty command in pipeline")
            return ExecutionResult(exit_code=1)

        for command in pipeline:
            if command.truncated:
                self.builtins.err.write(
                    format_warning(
                        f"{command.program}: too many arguments, "
                        f"truncated to {self.config.shell.arg_max_count}"
                    )
                )

        start = time.monotonic()
        if pipeline.is_simple:
            result = self._execute_simple(pipeline)
        else:
            result = self._execute_pipeline(pipeline)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug(
            "Executed %r: %s, %d process(es), %dms",
            pipeline.line,
            describe_exit_code(result.exit_code),
            result.spawned,
            elapsed_ms,
        )
        return result

    def _execute_simple(self, pipeline: Pipeline) -> ExecutionResult:
        command = pipeline.commands[0]
        outcome = self.builtins.try_handle(pipeline, command)
        if outcome.action is BuiltinAction.EXIT:
            return ExecutionResult(exit_code=outcome.exit_code, exit_requested=True)
        if outcome.action is BuiltinAction.HANDLED:
            return ExecutionResult(exit_code=outcome.exit_code)

        self._wire(pipeline.commands, [])
        proc, exit_code = self._spawn(command)
        if proc is None:
            return ExecutionResult(exit_code=exit_code)
        return ExecutionResult(exit_code=normalize_returncode(proc.wait()), spawned=1)

    def _execute_pipeline(self, pipeline: Pipeline) -> ExecutionResult:
        builtins = [command.program for command in pipeline if is_builtin(command)]
        if builtins:
            self.builtins.error(f"no builtins in pipe: {', '.join(builtins)}")
            return ExecutionResult(exit_code=1)

        pipes = self._create_pipes(len(pipeline) - 1)
        processes: list[subprocess.Popen] = []
        last: subprocess.Popen | None = None
        exit_code = 0
        try:
            try:
                self._wire(pipeline.commands, pipes)
                for command in pipeline:
                    last, exit_code = self._spawn(command)
                    if last is not None:
                        processes.append(last)
            finally:
                # Downstream readers only see end-of-stream once every write end is closed here.
                self._close_pipes(pipes)
        finally:
            for proc in processes:
                proc.wait()

        if last is not None:
            exit_code = normalize_returncode(last.returncode)
        return ExecutionResult(exit_code=exit_code, spawned=len(processes))

    def _create_pipes(self, count: int) -> list[tuple[int, int]]:
        """Allocate ``count`` pipes as ``(read_end, write_end)`` pairs."""
        pipes: list[tuple[int, int]] = []
        try:
            for _ in range(count):
                pipes.append(os.pipe())
        except OSError as e:
            self._close_pipes(pipes)
            raise FatalError(f"unable to create pipe: {e.strerror}") from e
        logger.debug("Created %d pipe(s)", count)
        return pipes

    def _close_pipes(self, pipes: list[tuple[int, int]]) -> None:
        for read_end, write_end in pipes:
            os.close(read_end)
            os.close(write_end)

    def _wire(self, commands: list[Command], pipes: list[tuple[int, int]]) -> None:
        """Assign each stage its input and output descriptor."""
        commands[0].input_descriptor = _fileno(self.stdin)
        for i in range(1, len(commands)):
            read_end, write_end = pipes[i - 1]
            commands[i - 1].output_descriptor = write_end
            commands[i].input_descriptor = read_end
        commands[-1].output_descriptor = _fileno(self.stdout)

    def _flush_streams(self) -> None:
        for stream in (self.builtins.out, self.builtins.err, self.stdin, self.stdout):
            if not isinstance(stream, int):
                stream.flush()

    def _spawn(self, command: Command) -> tuple[subprocess.Popen | None, int]:
        """Start one stage. Returns the process, or None and a failure status.

        The child inherits only its two assigned descriptors (plus stderr);
        ``close_fds`` closes every other pipe end before the program runs.
        """
        self._flush_streams()
        executable = resolve_program(command.program)
        try:
            proc = subprocess.Popen(
                command.arguments,
                executable=executable,
                stdin=command.input_descriptor,
                stdout=command.output_descriptor,
                close_fds=True,
            )
        except FileNotFoundError as e:
            self.builtins.error(f"{command.program}: {e.strerror}")
            return None, NOT_FOUND
        except OSError as e:
            self.builtins.error(f"{command.program}: {e.strerror}")
            return None, NOT_EXEC
        except ValueError as e:
            # e.g. an argument with an embedded NUL byte
            self.builtins.error(f"{command.program}: {e}")
            return None, NOT_EXEC

        logger.debug(
            "Spawned pid=%d %s (stdin=%s, stdout=%s)",
            proc.pid,
            command.arguments,
            command.input_descriptor,
            command.output_descriptor,
        )
        return proc, 0

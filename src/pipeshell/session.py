"""Interactive session: the read-eval loop around the pipeline executor."""

from __future__ import annotations

import logging
import sys
from typing import Callable, Optional, TextIO

from pipeshell.config import AppConfig
from pipeshell.services.executor import STDIN_FILENO, STDOUT_FILENO, FatalError, PipelineExecutor, Stream
from pipeshell.services.tokenizer import parse_pipeline, should_skip
from pipeshell.storage.history import HistoryStore, should_record
from pipeshell.storage.models import ExecutionResult
from pipeshell.utils.formatting import format_error

logger = logging.getLogger(__name__)

LineReader = Callable[[], Optional[str]]


class Session:
    """Owns the history store and executor for one interpreter run."""

    def __init__(
        self,
        config: AppConfig,
        *,
        stdin: Stream = STDIN_FILENO,
        stdout: Stream = STDOUT_FILENO,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self.config = config
        self.history = HistoryStore(config.shell.history_max_items)
        self.executor = PipelineExecutor(config, self.history, stdin=stdin, stdout=stdout, out=out, err=err)
        self._err = err
        self.last_status = 0

    @property
    def err(self) -> TextIO:
        return self._err or sys.stderr

    def handle_line(self, line: str) -> ExecutionResult | None:
        """Record and execute one input line. Returns None for ignored lines."""
        if should_skip(line):
            return None

        pipeline = parse_pipeline(line, self.config.shell.arg_max_count)
        if should_record(pipeline):
            self.history.record(line)

        result = self.executor.execute(pipeline)
        self.last_status = result.exit_code
        return result

    def run_line(self, line: str) -> int:
        """Execute a single line non-interactively and return its exit status."""
        try:
            result = self.handle_line(line)
        except (FatalError, MemoryError) as e:
            self._report_fatal(e)
            return 1
        finally:
            self.history.clear()
        return result.exit_code if result is not None else 0

    def run(self, read_line: LineReader) -> int:
        """Read and execute lines until end-of-input or ``exit``.

        Returns the process exit status: 0 normally, 1 after a fatal error.
        """
        try:
            while True:
                try:
                    line = read_line()
                    if line is None:
                        break
                    result = self.handle_line(line)
                except KeyboardInterrupt:
                    self.err.write("\n")
                    continue

                if result is not None and result.exit_requested:
                    break
        except (FatalError, MemoryError) as e:
            self._report_fatal(e)
            return 1
        finally:
            self.history.clear()

        logger.info("Session ended, last status %d", self.last_status)
        return 0

    def _report_fatal(self, error: BaseException) -> None:
        logger.critical("Fatal error: %s", error, exc_info=error)
        self.err.write(format_error(str(error) or "memory alloc error"))
        self.err.flush()

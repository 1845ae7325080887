"""Split input lines into pipelines of whitespace-separated arguments."""

from __future__ import annotations

import logging

from pipeshell.storage.models import Command, Pipeline

logger = logging.getLogger(__name__)

PIPE_SEPARATOR = "|"
ARG_MAX_COUNT = 1024


def is_blank(line: str) -> bool:
    return not line.strip()


def should_skip(line: str) -> bool:
    """Blank lines and lines starting with the pipe separator are ignored."""
    return is_blank(line) or line.startswith(PIPE_SEPARATOR)


def parse_command(text: str, arg_max_count: int = ARG_MAX_COUNT) -> Command:
    """Tokenize one stage. Tokens past ``arg_max_count`` are dropped."""
    tokens = text.split()
    truncated = len(tokens) > arg_max_count
    if truncated:
        logger.warning(
            "Argument list of %s truncated from %d to %d", tokens[0], len(tokens), arg_max_count
        )
        tokens = tokens[:arg_max_count]
    return Command(arguments=tokens, truncated=truncated)


def parse_pipeline(line: str, arg_max_count: int = ARG_MAX_COUNT) -> Pipeline:
    """Split a line on the pipe separator and tokenize every stage.

    Callers must not pass blank lines (see ``should_skip``). Stages that
    tokenize to nothing are kept as empty commands for the executor to reject.
    """
    stages = line.split(PIPE_SEPARATOR)
    return Pipeline(commands=[parse_command(stage, arg_max_count) for stage in stages], line=line)

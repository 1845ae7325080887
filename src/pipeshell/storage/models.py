"""Data models for pipeshell."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class Command:
    """One pipeline stage: its argument list and the descriptors it is wired to."""

    arguments: list[str] = field(default_factory=list)
    input_descriptor: int | None = None
    output_descriptor: int | None = None
    truncated: bool = False

    @property
    def program(self) -> str:
        return self.arguments[0] if self.arguments else ""

    @property
    def is_empty(self) -> bool:
        return not self.arguments


@dataclass
class Pipeline:
    """Ordered, non-empty sequence of commands parsed from one input line."""

    commands: list[Command]
    line: str = ""

    def __post_init__(self) -> None:
        if not self.commands:
            raise ValueError("A pipeline needs at least one command")

    def __len__(self) -> int:
        return len(self.commands)

    def __iter__(self) -> Iterator[Command]:
        return iter(self.commands)

    @property
    def is_simple(self) -> bool:
        return len(self.commands) == 1


@dataclass
class ExecutionResult:
    """Result of executing a pipeline."""

    exit_code: int = 0
    exit_requested: bool = False
    spawned: int = 0

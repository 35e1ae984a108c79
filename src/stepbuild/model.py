# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Union

if TYPE_CHECKING:
    from .environment import Environment


class Platform(str, Enum):
    LINUX = "linux"
    WINDOWS = "windows"
    MACOS = "macos"


@dataclass(frozen=True)
class HostTarget:
    """Platform + architecture of a machine (the host, or the one built for)."""
    platform: Platform
    architecture: str

    def __str__(self) -> str:
        return f"{self.platform.value}-{self.architecture}"


@dataclass(frozen=True)
class StepCommand:
    """One external process invocation."""
    program: str
    arguments: list[str] = field(default_factory=list)
    working_directory_path: str | None = None   # defaults to env.work_directory_path
    administrator: bool = False                 # request privilege elevation

    def argv(self) -> list[str]:
        return [self.program, *self.arguments]

    def display(self) -> str:
        return " ".join(self.argv())


Configure = Callable[["Environment"], None]
Condition = Callable[["Environment"], bool]
CommandFactory = Callable[["Environment"], StepCommand]
RunAction = Callable[["Environment"], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True)
class Step:
    """
    A named pipeline stage.

    Every hook is optional:
      - configure(env): mutates env.vars, runs even when the step is skipped
      - condition(env) -> bool: True if the step should execute (default True)
      - command(env) -> StepCommand: external process to launch
      - run(env) -> bool | awaitable[bool]: inline action

    A step with neither `command` nor `run` executes as a no-op success.
    """
    name: str
    configure: Optional[Configure] = None
    condition: Optional[Condition] = None
    command: Optional[CommandFactory] = None
    run: Optional[RunAction] = None

    spinner: bool = False     # display only
    exit_fail: bool = True    # False: a failure is recorded but the run continues

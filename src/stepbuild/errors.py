# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


class StepbuildError(Exception):
    """Base class for every error raised by stepbuild."""


@dataclass
class UserInputError(StepbuildError):
    """Unknown target, malformed --steps value, bad flag value."""
    message: str
    hint: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class ConfigurationTypeError(StepbuildError):
    """A step read a variable with the wrong expected shape."""
    key: str
    expected: str
    actual: str

    def __str__(self) -> str:
        return f"variable '{self.key}' should be {self.expected}, got {self.actual}"


class MissingVariableError(StepbuildError, KeyError):
    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"variable '{self.key}' is not set"


@dataclass
class LaunchError(StepbuildError):
    """
    The external program could not be spawned at all.

    Distinct from a non-zero exit: it points at a broken environment
    (missing executable, permission denied), so it is always fatal.
    """
    program: str
    reason: str

    def __str__(self) -> str:
        return f"could not launch '{self.program}': {self.reason}"


@dataclass
class StepConfigurationError(StepbuildError):
    index: int
    step: str
    cause: BaseException

    def __str__(self) -> str:
        return f"configuration of step {self.index} ('{self.step}') failed: {self.cause}"


@dataclass
class StepExecutionFailure(StepbuildError):
    index: int
    step: str
    message: str
    exit_code: int | None = None
    output: str = field(default="", repr=False)

    def __str__(self) -> str:
        if self.exit_code is not None:
            return f"step {self.index} ('{self.step}') failed (exit={self.exit_code}): {self.message}"
        return f"step {self.index} ('{self.step}') failed: {self.message}"

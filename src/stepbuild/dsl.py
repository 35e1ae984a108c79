# src/stepbuild/dsl.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from .environment import Environment
from .model import CommandFactory, Condition, Configure, RunAction, Step, StepCommand


# ---------------------------------------------------------------------
# Command helper
# ---------------------------------------------------------------------

def cmd(
    program: str,
    *arguments: str,
    cwd: str | None = None,
    administrator: bool = False,
) -> StepCommand:
    """Create a StepCommand: cmd("git", "clone", url)."""
    return StepCommand(
        program=program,
        arguments=list(arguments),
        working_directory_path=cwd,
        administrator=administrator,
    )


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def step(
    name: str,
    *,
    configure: Optional[Configure] = None,
    condition: Optional[Condition] = None,
    command: Optional[CommandFactory] = None,
    run: Optional[RunAction] = None,
    spinner: bool = False,
    exit_fail: bool = True,
) -> Step:
    return Step(
        name=name,
        configure=configure,
        condition=condition,
        command=command,
        run=run,
        spinner=spinner,
        exit_fail=exit_fail,
    )


def sh(
    name: str,
    program: str,
    *arguments: str,
    cwd: str | None = None,
    administrator: bool = False,
    **kwargs,
) -> Step:
    """Step that always launches the same command."""
    fixed = cmd(program, *arguments, cwd=cwd, administrator=administrator)
    return step(name, command=lambda env: fixed, **kwargs)


def ensure_programs(*programs: str, name: str | None = None) -> Step:
    """Step that fails unless every program is on PATH."""
    return step(
        name or "Ensures required programs in environment",
        run=lambda env: env.ensure_programs(programs),
    )


def unless_exists(*parts: str) -> Condition:
    """
    Condition: run only while `parts` (joined onto the work directory, or an
    absolute path) does not exist. The usual way to make a step idempotent.
    """
    def condition(env: Environment) -> bool:
        return not Path(env.work_directory_path, *parts).exists()

    return condition


# ---------------------------------------------------------------------
# Target helper
# ---------------------------------------------------------------------

def target(*steps: Step) -> List[Step]:
    """
    Target definition helper:

        TARGETS = {
            "demo": target(
                step("A", condition=lambda env: False, run=lambda env: True),
                sh("B", "echo", "hello"),
            ),
        }
    """
    names = [s.name for s in steps]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ValueError(f"Duplicate step names in target: {dupes}")
    return list(steps)

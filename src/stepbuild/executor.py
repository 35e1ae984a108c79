# executor.py
from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Iterable, List, Optional, Set

from .environment import Environment
from .errors import LaunchError, StepConfigurationError, StepExecutionFailure, UserInputError
from .model import Step
from .process import ProcessRunner
from .ui.console import Console, get_console


class StepState(str, Enum):
    PENDING = "pending"
    CONFIGURED = "configured"
    SKIPPED = "skipped"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class StepRecord:
    """What happened to one step during a run."""
    index: int      # 1-based
    name: str
    state: StepState = StepState.PENDING
    executed: bool = False
    tolerated: bool = False     # failed, but exit_fail=False let the run continue
    error: Optional[str] = None


@dataclass
class RunOutcome:
    """
    Result of one pipeline run.

    Truthy iff every step that was not allowed to fail succeeded, so
    `if executor.run_all(env, steps): ...` reads naturally.
    """
    target: str
    records: List[StepRecord] = field(default_factory=list)
    failed_index: Optional[int] = None
    message: Optional[str] = None

    @property
    def all_succeeded(self) -> bool:
        return self.failed_index is None

    @property
    def executed_indices(self) -> List[int]:
        return [r.index for r in self.records if r.executed]

    @property
    def tolerated_indices(self) -> List[int]:
        return [r.index for r in self.records if r.tolerated]

    def record(self, index: int) -> StepRecord:
        return self.records[index - 1]

    def fail(self, index: int, message: str) -> "RunOutcome":
        self.failed_index = index
        self.message = message
        return self

    def __bool__(self) -> bool:
        return self.all_succeeded


class PipelineExecutor:
    """
    Walks an ordered step list against one Environment.

    Per step: configure (always) -> condition (unless forced) -> command/run.
    Strictly sequential: a step's hooks may read anything earlier steps put
    into env.vars, including steps whose command was skipped.
    """

    def __init__(self, runner: ProcessRunner | None = None, console: Console | None = None):
        self.runner = runner or ProcessRunner()
        self._console = console

    @property
    def console(self) -> Console:
        return self._console or get_console()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run_all(self, env: Environment, steps: List[Step], *, force: bool = False) -> RunOutcome:
        """
        Execute every step in order; stop at the first fatal failure.

        Raises:
            UserInputError: the work directory cannot be created (nothing runs)
        """
        return self._run(env, steps, selected=None, force=force)

    def run_selected(
        self,
        env: Environment,
        steps: List[Step],
        indices: Iterable[int],
        *,
        force: bool = False,
    ) -> RunOutcome:
        """
        Execute only the steps whose 1-based index is in `indices`.

        configure and condition still run for every step, because later
        steps depend on what earlier ones put into env.vars.

        Raises:
            UserInputError: an index is outside 1..len(steps) (nothing runs)
            UserInputError: the work directory cannot be created
        """
        selected = set(indices)
        invalid = sorted(i for i in selected if not 1 <= i <= len(steps))
        if invalid:
            raise UserInputError(
                f"Invalid step index: {', '.join(str(i) for i in invalid)}. "
                f"Target '{env.name}' has {len(steps)} steps.",
                hint=f"Use indices between 1 and {len(steps)}.",
            )
        return self._run(env, steps, selected=selected, force=force)

    # ------------------------------------------------------------------
    # Per-step protocol
    # ------------------------------------------------------------------

    def _run(
        self,
        env: Environment,
        steps: List[Step],
        *,
        selected: Optional[Set[int]],
        force: bool,
    ) -> RunOutcome:
        console = self.console
        count = len(steps)
        outcome = RunOutcome(
            target=env.name,
            records=[StepRecord(index=i, name=s.name) for i, s in enumerate(steps, start=1)],
        )
        console.print_debug(f"There are {count} build steps in target {env.name}.")
        try:
            env.prepare()
        except OSError as e:
            raise UserInputError(
                f"Cannot create work directory {env.work_directory_path}: {e.strerror or e}",
                hint="Pass a writable --work-root or set STEPBUILD_WORK_ROOT.",
            ) from e

        for index, step in enumerate(steps, start=1):
            record = outcome.record(index)
            label = f"({index}/{count}) {step.name}"

            try:
                self._configure(index, step, env)
            except StepConfigurationError as e:
                record.state = StepState.FAILED
                record.error = str(e)
                console.print_failure(step.name, str(e))
                console.print_debug(repr(e.cause))
                return outcome.fail(index, str(e))
            record.state = StepState.CONFIGURED

            execute = self._condition(index, step, env, force)

            if selected is not None and index not in selected:
                console.print_debug(f"Step {index} is not selected.")
                record.state = StepState.SKIPPED
                continue
            if not execute:
                record.state = StepState.SKIPPED
                console.print_step_skipped(label)
                continue

            console.print_debug(f"Execute the desired step {index}.")
            console.print_step(label)
            record.state = StepState.EXECUTING
            record.executed = True

            try:
                self._execute(index, step, env, label)
            except LaunchError as e:
                # a broken environment is never tolerated
                record.state = StepState.FAILED
                record.error = str(e)
                console.print_failure(step.name, str(e))
                return outcome.fail(index, str(e))
            except StepExecutionFailure as e:
                record.state = StepState.FAILED
                record.error = str(e)
                if step.exit_fail:
                    console.print_failure(step.name, str(e), exit_code=e.exit_code, output=e.output)
                    return outcome.fail(index, str(e))
                record.tolerated = True
                console.print_tolerated_failure(label, str(e))
                continue

            record.state = StepState.SUCCEEDED

        return outcome

    def _configure(self, index: int, step: Step, env: Environment) -> None:
        if step.configure is None:
            return
        self.console.print_debug(f"Execute configuration of step {index}.")
        try:
            step.configure(env)
        except Exception as e:
            raise StepConfigurationError(index=index, step=step.name, cause=e) from e

    def _condition(self, index: int, step: Step, env: Environment, force: bool) -> bool:
        if step.condition is None or force:
            return True
        console = self.console
        console.print_debug(f"Execute condition of step {index}.")
        try:
            execute = bool(step.condition(env))
        except Exception as e:
            # fail-safe: a broken condition never launches anything
            console.print_warning(f"Condition of step {index} ('{step.name}') failed, skipping it: {e}")
            console.print_debug(repr(e))
            return False
        console.print_debug(f"Condition is {execute}.")
        return execute

    def _execute(self, index: int, step: Step, env: Environment, label: str) -> None:
        """
        Run the step's command, then its inline action.

        Raises:
            LaunchError: the command's program could not be spawned
            StepExecutionFailure: non-zero exit, falsy run() or an exception
                                  raised by a hook
        """
        try:
            if step.command is not None:
                cmd = step.command(env)
                result = self.runner.launch(cmd, env, progress=step.spinner, message=label)
                if not result.succeeded:
                    raise StepExecutionFailure(
                        index=index,
                        step=step.name,
                        message=cmd.display(),
                        exit_code=result.exit_code,
                        output=result.output,
                    )

            if step.run is not None:
                with self.console.spinner(label, enabled=step.spinner):
                    ok = _resolve(step.run(env))
                if not ok:
                    raise StepExecutionFailure(index=index, step=step.name, message="action reported failure")
        except (LaunchError, StepExecutionFailure):
            raise
        except Exception as e:
            raise StepExecutionFailure(index=index, step=step.name, message=f"{type(e).__name__}: {e}") from e


def _resolve(value: Any) -> bool:
    """Drive an awaitable result of run() to completion."""
    if inspect.isawaitable(value):
        return bool(asyncio.run(_await(value)))
    return bool(value)


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable

"""Tests for the step pipeline executor."""

from pathlib import Path

import pytest

from stepbuild.dsl import cmd, sh, step, unless_exists
from stepbuild.environment import Environment
from stepbuild.errors import UserInputError
from stepbuild.executor import PipelineExecutor, StepState

from conftest import FakeRunner, LINUX_X64


class Calls:
    """Collects (hook, step name) pairs in call order."""

    def __init__(self):
        self.log = []

    def configure(self, name):
        return lambda env: self.log.append(("configure", name))

    def condition(self, name, result=True):
        def condition(env):
            self.log.append(("condition", name))
            return result
        return condition

    def run(self, name, result=True):
        def run(env):
            self.log.append(("run", name))
            return result
        return run

    def of(self, hook):
        return [name for h, name in self.log if h == hook]


@pytest.fixture
def calls():
    return Calls()


@pytest.fixture
def executor(runner):
    return PipelineExecutor(runner=runner)


class TestRunAll:
    def test_demo_target_skips_false_condition_and_runs_command(self, executor, runner, env, calls):
        steps = [
            step("A", condition=lambda env: False, run=calls.run("A")),
            sh("B", "echo", "hello"),
        ]

        outcome = executor.run_all(env, steps)

        assert outcome
        assert outcome.all_succeeded is True
        assert outcome.failed_index is None
        assert calls.of("run") == []
        assert runner.programs == ["echo"]
        assert outcome.record(1).executed is False
        assert outcome.record(1).state is StepState.SKIPPED
        assert outcome.record(2).executed is True
        assert outcome.record(2).state is StepState.SUCCEEDED
        assert outcome.executed_indices == [2]

    def test_steps_run_in_order_once(self, executor, env, calls):
        steps = [
            step(n, configure=calls.configure(n), condition=calls.condition(n), run=calls.run(n))
            for n in ("one", "two", "three")
        ]

        executor.run_all(env, steps)

        assert calls.log == [
            ("configure", "one"), ("condition", "one"), ("run", "one"),
            ("configure", "two"), ("condition", "two"), ("run", "two"),
            ("configure", "three"), ("condition", "three"), ("run", "three"),
        ]

    def test_first_fatal_failure_stops_the_run(self, env, calls):
        runner = FakeRunner(exit_codes={"make": 2})
        steps = [
            step("ok", run=calls.run("ok")),
            step("build", command=lambda env: cmd("make")),
            step("never", configure=calls.configure("never"), run=calls.run("never")),
        ]

        outcome = PipelineExecutor(runner=runner).run_all(env, steps)

        assert not outcome
        assert outcome.failed_index == 2
        assert "exit=2" in outcome.message
        assert calls.of("run") == ["ok"]
        assert calls.of("configure") == []
        assert outcome.record(2).state is StepState.FAILED
        assert outcome.record(3).state is StepState.PENDING

    def test_falsy_run_result_is_a_failure(self, executor, env):
        outcome = executor.run_all(env, [step("nope", run=lambda env: False)])

        assert outcome.failed_index == 1
        assert "action reported failure" in outcome.message

    def test_tolerated_failure_continues(self, env, calls):
        runner = FakeRunner(exit_codes={"git": 128})
        steps = [
            step("clone", command=lambda env: cmd("git", "clone", "x"), exit_fail=False),
            step("after", run=calls.run("after")),
        ]

        outcome = PipelineExecutor(runner=runner).run_all(env, steps)

        assert outcome
        assert outcome.tolerated_indices == [1]
        assert outcome.record(1).state is StepState.FAILED
        assert calls.of("run") == ["after"]

    def test_launch_error_is_fatal_even_when_tolerated(self, env, calls):
        runner = FakeRunner(unlaunchable={"ghost"})
        steps = [
            step("missing", command=lambda env: cmd("ghost"), exit_fail=False),
            step("after", run=calls.run("after")),
        ]

        outcome = PipelineExecutor(runner=runner).run_all(env, steps)

        assert outcome.failed_index == 1
        assert "could not launch 'ghost'" in outcome.message
        assert calls.of("run") == []

    def test_configure_error_aborts_with_index(self, executor, env, calls):
        def broken(env):
            raise RuntimeError("boom")

        steps = [
            step("ok", run=calls.run("ok")),
            step("broken", configure=broken, run=calls.run("broken")),
            step("never", run=calls.run("never")),
        ]

        outcome = executor.run_all(env, steps)

        assert outcome.failed_index == 2
        assert "boom" in outcome.message
        assert calls.of("run") == ["ok"]

    def test_condition_error_skips_the_step(self, executor, env, calls):
        def broken(env):
            return env.vars["not_set"]

        steps = [
            step("guarded", condition=broken, run=calls.run("guarded")),
            step("next", run=calls.run("next")),
        ]

        outcome = executor.run_all(env, steps)

        assert outcome
        assert calls.of("run") == ["next"]
        assert outcome.record(1).state is StepState.SKIPPED

    def test_hook_exception_in_run_is_an_execution_failure(self, executor, env):
        def explode(env):
            raise ValueError("bad value")

        outcome = executor.run_all(env, [step("explode", run=explode)])

        assert outcome.failed_index == 1
        assert "ValueError: bad value" in outcome.message

    def test_step_without_action_is_a_noop_success(self, executor, env, calls):
        outcome = executor.run_all(env, [step("empty", configure=calls.configure("empty"))])

        assert outcome
        assert outcome.record(1).executed is True
        assert outcome.record(1).state is StepState.SUCCEEDED

    def test_async_run_is_awaited(self, executor, env):
        async def action(env):
            env.vars["async_ran"] = True
            return True

        outcome = executor.run_all(env, [step("async", run=action)])

        assert outcome
        assert env.vars["async_ran"] is True

    def test_command_runs_before_run_and_failure_skips_run(self, env, calls):
        runner = FakeRunner(exit_codes={"bad": 1})
        ok_steps = [step("both", command=lambda env: cmd("good"), run=calls.run("both"))]
        bad_steps = [step("both", command=lambda env: cmd("bad"), run=calls.run("both-bad"))]

        assert PipelineExecutor(runner=runner).run_all(env, ok_steps)
        assert not PipelineExecutor(runner=runner).run_all(env, bad_steps)

        assert runner.programs == ["good", "bad"]
        assert calls.of("run") == ["both"]

    def test_force_bypasses_conditions_but_not_configure(self, executor, env, calls):
        steps = [
            step("a", configure=calls.configure("a"), condition=calls.condition("a", False), run=calls.run("a")),
            step("b", configure=calls.configure("b"), condition=calls.condition("b", False), run=calls.run("b")),
        ]

        outcome = executor.run_all(env, steps, force=True)

        assert outcome.executed_indices == [1, 2]
        assert calls.of("condition") == []
        assert calls.of("configure") == ["a", "b"]

    def test_work_directory_is_created(self, executor, env):
        assert not Path(env.work_directory_path).exists()

        executor.run_all(env, [])

        assert Path(env.work_directory_path).is_dir()

    def test_uncreatable_work_directory_is_user_error(self, executor, work_root, calls):
        work_root.parent.mkdir(parents=True, exist_ok=True)
        work_root.write_text("not a directory")
        env = Environment("demo", host=LINUX_X64, work_root=work_root)

        with pytest.raises(UserInputError, match="Cannot create work directory"):
            executor.run_all(env, [step("a", configure=calls.configure("a"))])

        assert calls.of("configure") == []

    def test_idempotent_second_run(self, executor, env, calls):
        def build(env):
            calls.log.append(("run", "build"))
            Path(env.path("marker")).write_text("done")
            return True

        steps = [step("build", configure=calls.configure("build"), condition=unless_exists("marker"), run=build)]

        first = executor.run_all(env, steps)
        second = executor.run_all(env, steps)

        assert first.executed_indices == [1]
        assert second.executed_indices == []
        assert calls.of("configure") == ["build", "build"]
        assert calls.of("run") == ["build"]


class TestRunSelected:
    def test_configure_and_condition_run_for_every_step(self, executor, env, calls):
        steps = [
            step(n, configure=calls.configure(n), condition=calls.condition(n), run=calls.run(n))
            for n in ("one", "two", "three")
        ]

        outcome = executor.run_selected(env, steps, [3, 1])

        assert calls.of("configure") == ["one", "two", "three"]
        assert calls.of("condition") == ["one", "two", "three"]
        assert calls.of("run") == ["one", "three"]
        assert outcome.executed_indices == [1, 3]
        assert outcome.record(2).state is StepState.SKIPPED

    def test_selected_step_with_false_condition_is_skipped(self, executor, env, calls):
        steps = [step("a", condition=calls.condition("a", False), run=calls.run("a"))]

        outcome = executor.run_selected(env, steps, [1])

        assert outcome
        assert outcome.executed_indices == []

    def test_force_runs_selected_steps_only(self, executor, env, calls):
        steps = [
            step(n, condition=calls.condition(n, False), run=calls.run(n))
            for n in ("one", "two")
        ]

        outcome = executor.run_selected(env, steps, [2], force=True)

        assert outcome.executed_indices == [2]
        assert calls.of("condition") == []

    def test_later_steps_see_vars_from_unselected_configure(self, executor, env):
        seen = {}

        def configure(env):
            env.vars["sdk_path"] = env.path("sdk")

        def use(env):
            seen["sdk_path"] = env.vars.get_str("sdk_path")
            return True

        steps = [
            step("configure only", configure=configure, run=lambda env: False),
            step("use", run=use),
        ]

        outcome = executor.run_selected(env, steps, [2])

        assert outcome
        assert seen["sdk_path"] == env.path("sdk")

    def test_failure_reports_its_index(self, executor, env, calls):
        steps = [
            step("a", run=calls.run("a")),
            step("b", run=lambda env: False),
            step("c", run=calls.run("c")),
        ]

        outcome = executor.run_selected(env, steps, [2, 3])

        assert outcome.failed_index == 2
        assert calls.of("run") == []

    @pytest.mark.parametrize("indices", [[0], [4], [1, -1]])
    def test_out_of_range_indices_are_rejected_before_running(self, executor, work_root, indices, calls):
        env = Environment("demo", host=LINUX_X64, work_root=work_root)
        steps = [step(n, configure=calls.configure(n)) for n in ("a", "b", "c")]

        with pytest.raises(UserInputError, match="Invalid step index"):
            executor.run_selected(env, steps, indices)

        assert calls.log == []
        assert not Path(env.work_directory_path).exists()


def test_environment_execute_uses_default_executor(env):
    outcome = env.execute([step("a", run=lambda env: True)])

    assert outcome
    assert outcome.target == "demo"

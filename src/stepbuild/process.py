# process.py
from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List

from .errors import LaunchError
from .model import StepCommand
from .ui.console import get_console

if TYPE_CHECKING:
    from .environment import Environment


# how much captured output is kept for failure reports
OUTPUT_TAIL = 4000


@dataclass(frozen=True)
class LaunchResult:
    exit_code: int
    output: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class ProcessRunner:
    """
    Launches the external program behind a StepCommand and waits for it.

    Blocks until the process exits; there is no timeout and no way to cancel
    a launched process from here.
    """

    def build_argv(self, cmd: StepCommand, env: "Environment", cwd: Path) -> List[str]:
        resolved = env.policy.resolve_program(cmd.program, cwd=cwd)
        if resolved is None:
            raise LaunchError(program=cmd.program, reason="not found on PATH or on disk")
        argv = [resolved, *cmd.arguments]
        if cmd.administrator:
            argv = env.policy.elevate(argv)
        return argv

    def process_env(self, env: "Environment") -> Dict[str, str]:
        proc_env = os.environ.copy()
        proc_env.update(env.vars.exported())
        return proc_env

    def launch(
        self,
        cmd: StepCommand,
        env: "Environment",
        *,
        progress: bool = False,
        message: str = "",
    ) -> LaunchResult:
        """
        Run `cmd` to completion.

        Args:
            cmd: what to run
            env: run context (work directory default, platform policy, exported vars)
            progress: show a spinner and capture the output instead of streaming it
            message: spinner label

        Returns:
            LaunchResult; `succeeded` is `exit_code == 0`

        Raises:
            LaunchError: the program could not be found or spawned
        """
        console = get_console()
        cwd = Path(cmd.working_directory_path or env.work_directory_path)
        if not cwd.is_dir():
            raise LaunchError(program=cmd.program, reason=f"working directory not found: {cwd}")

        argv = self.build_argv(cmd, env, cwd)
        console.print_debug(f"Launching {argv} in {cwd}")

        try:
            if progress:
                with console.spinner(message or cmd.display()):
                    proc = subprocess.run(
                        argv,
                        cwd=str(cwd),
                        env=self.process_env(env),
                        text=True,
                        stdout=subprocess.PIPE,
                        stderr=subprocess.STDOUT,
                        errors="replace",
                    )
                output = (proc.stdout or "")[-OUTPUT_TAIL:]
            else:
                proc = subprocess.run(argv, cwd=str(cwd), env=self.process_env(env))
                output = ""
        except OSError as e:
            # missing interpreter for a script, permission denied, ...
            raise LaunchError(program=cmd.program, reason=e.strerror or str(e)) from e

        console.print_debug(f"{cmd.program} exited with {proc.returncode}")
        return LaunchResult(exit_code=proc.returncode, output=output)

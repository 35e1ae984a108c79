# environment.py
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from . import settings
from .model import HostTarget, Step
from .platforms import PlatformPolicy, detect_host, policy_for
from .ui.console import get_console
from .variables import VariableStore

if TYPE_CHECKING:
    from .executor import RunOutcome


PROGRAM_HINTS = {
    "git": "Install Git or fix PATH.",
    "python": "Install Python 3 or fix PATH (python).",
    "python3": "Install Python 3 or fix PATH (python3).",
    "dart": "Install the Dart SDK or fix PATH.",
}


class Environment:
    """
    Mutable context of one pipeline run.

    Holds the shared variables, the host and target descriptions and the
    run's work directory. Every step hook receives the same instance; steps
    run one after another so nothing here is locked.

    Constructing an Environment never fails and never touches the
    filesystem; the work directory is created when a run starts.
    """

    def __init__(
        self,
        name: str,
        vars: Optional[Dict[str, Any]] = None,
        *,
        host: HostTarget | None = None,
        target: HostTarget | None = None,
        work_root: str | Path | None = None,
    ):
        self._name = name
        self._host = host or detect_host()
        # not cross compiling unless asked to
        self._target = target or self._host
        root = Path(work_root if work_root is not None else settings.WORK_ROOT).expanduser()
        self._work_directory_path = str((root / name).resolve())
        self.vars = VariableStore(vars)

    @property
    def name(self) -> str:
        return self._name

    @property
    def host(self) -> HostTarget:
        return self._host

    @property
    def target(self) -> HostTarget:
        return self._target

    @property
    def work_directory_path(self) -> str:
        return self._work_directory_path

    @property
    def policy(self) -> PlatformPolicy:
        """Policy of the host: that's where processes are launched."""
        return policy_for(self._host.platform)

    def path(self, *parts: str) -> str:
        """Join `parts` onto the work directory."""
        return str(Path(self._work_directory_path, *parts))

    def prepare(self) -> None:
        Path(self._work_directory_path).mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # helpers used by step definitions
    # ------------------------------------------------------------------

    def missing_programs(self, programs: Iterable[str]) -> List[str]:
        return [p for p in programs if self.policy.resolve_program(p) is None]

    def ensure_programs(self, programs: Iterable[str]) -> bool:
        """True iff every program can be found on PATH; reports the missing ones."""
        missing = self.missing_programs(programs)
        if missing:
            get_console().print_error(
                "Missing programs",
                "The following programs are required but could not be found:",
                details=[f"{p}: {PROGRAM_HINTS.get(p, f'Install {p} or fix PATH.')}" for p in missing],
            )
            return False
        return True

    def execute(self, steps: List[Step], *, force: bool = False) -> "RunOutcome":
        """Run every step in order with a default executor."""
        from .executor import PipelineExecutor

        return PipelineExecutor().run_all(self, steps, force=force)

    def __repr__(self) -> str:
        return (
            f"Environment(name={self._name!r}, host={self._host}, target={self._target}, "
            f"work_directory_path={self._work_directory_path!r})"
        )

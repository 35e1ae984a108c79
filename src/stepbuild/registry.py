# registry.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional

from .errors import UserInputError
from .model import Step


class TargetRegistry:
    """Target name -> ordered steps. Lookup is by exact name."""

    def __init__(self, targets: Optional[Mapping[str, List[Step]]] = None):
        self._targets: Dict[str, List[Step]] = {}
        for name, steps in (targets or {}).items():
            self.register(name, steps)

    def register(self, name: str, steps: List[Step]) -> None:
        if not isinstance(steps, list) or not all(isinstance(s, Step) for s in steps):
            raise TypeError(f"Target '{name}' must be a List[Step]")
        self._targets[name] = steps

    def update(self, targets: Mapping[str, List[Step]]) -> None:
        for name, steps in targets.items():
            self.register(name, steps)

    @property
    def names(self) -> List[str]:
        return list(self._targets)

    def resolve(self, name: str) -> List[Step]:
        """
        Raises:
            UserInputError: no target with that exact name
        """
        try:
            return self._targets[name]
        except KeyError:
            raise UserInputError(
                "Your target is invalid. Please specify an existing target: "
                + ";".join(self._targets)
                + ".",
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._targets

    def __iter__(self) -> Iterator[str]:
        return iter(self._targets)


# ----------------------------------------------------------------------
# Target loading (local file)
# ----------------------------------------------------------------------

def load_targets(path: str | Path) -> Dict[str, List[Step]]:
    """
    Load extra targets from a python file.

    The file must define either:
      - targets() -> Dict[str, List[Step]]
      - TARGETS = {"name": [Step, ...]}

    Raises:
        UserInputError: the file is missing, not a .py file, fails to run,
            or defines neither
    """
    targets_path = Path(path).expanduser().resolve()
    if not targets_path.exists():
        raise UserInputError(f"Targets file not found: {targets_path}")
    if targets_path.suffix != ".py":
        raise UserInputError(f"Targets file must be a .py file, got: {targets_path.name}")

    module_name = f"stepbuild_targets_{targets_path.stem}"
    try:
        globals_dict = runpy.run_path(str(targets_path), run_name=module_name)
        if "targets" in globals_dict and callable(globals_dict["targets"]):
            found = globals_dict["targets"]()
        elif "TARGETS" in globals_dict:
            found = globals_dict["TARGETS"]
        else:
            found = None
    except Exception as e:
        raise UserInputError(
            f"Could not load {targets_path.name}: {e}",
            hint="Run the file with python to see the full traceback.",
        ) from e

    if not isinstance(found, Mapping):
        raise UserInputError(
            f"{targets_path.name} must define targets() -> Dict[str, List[Step]] "
            "or TARGETS = {name: [Step, ...]}."
        )
    return dict(found)


def default_registry(targets_file: str | Path | None = None) -> TargetRegistry:
    """Built-in targets, plus (and overridden by) the ones in `targets_file`."""
    from .targets import BUILTIN_TARGETS

    registry = TargetRegistry(BUILTIN_TARGETS)
    if targets_file:
        extra = load_targets(targets_file)
        try:
            registry.update(extra)
        except TypeError as e:
            raise UserInputError(str(e)) from e
    return registry

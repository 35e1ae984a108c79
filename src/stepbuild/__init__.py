from .dsl import cmd, ensure_programs, sh, step, target, unless_exists
from .environment import Environment
from .executor import PipelineExecutor, RunOutcome, StepRecord, StepState
from .model import HostTarget, Platform, Step, StepCommand
from .process import LaunchResult, ProcessRunner
from .registry import TargetRegistry, default_registry, load_targets

__all__ = [
    "cmd", "ensure_programs", "sh", "step", "target", "unless_exists",
    "Environment", "PipelineExecutor", "RunOutcome", "StepRecord", "StepState",
    "HostTarget", "Platform", "Step", "StepCommand", "LaunchResult", "ProcessRunner",
    "TargetRegistry", "default_registry", "load_targets",
]

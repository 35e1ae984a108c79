import pytest

from stepbuild.environment import Environment
from stepbuild.errors import LaunchError
from stepbuild.model import HostTarget, Platform
from stepbuild.process import LaunchResult, ProcessRunner
from stepbuild.ui.console import Console, set_console

LINUX_X64 = HostTarget(platform=Platform.LINUX, architecture="x64")
WINDOWS_X64 = HostTarget(platform=Platform.WINDOWS, architecture="x64")
MACOS_ARM64 = HostTarget(platform=Platform.MACOS, architecture="arm64")


class FakeRunner(ProcessRunner):
    """Records launched commands instead of spawning them."""

    def __init__(self, exit_codes=None, unlaunchable=()):
        self.exit_codes = exit_codes or {}
        self.unlaunchable = set(unlaunchable)
        self.launched = []

    def launch(self, cmd, env, *, progress=False, message=""):
        self.launched.append(cmd)
        if cmd.program in self.unlaunchable:
            raise LaunchError(program=cmd.program, reason="not found on PATH or on disk")
        return LaunchResult(exit_code=self.exit_codes.get(cmd.program, 0))

    @property
    def programs(self):
        return [c.program for c in self.launched]


@pytest.fixture(autouse=True)
def _quiet_console():
    set_console(Console(debug=False, spinner=False))
    yield
    set_console(Console())


@pytest.fixture
def work_root(tmp_path):
    return tmp_path / "work"


@pytest.fixture
def env(work_root):
    return Environment("demo", host=LINUX_X64, work_root=work_root)


@pytest.fixture
def runner():
    return FakeRunner()

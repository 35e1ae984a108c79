# platforms.py
# Every "if windows ... else ..." lives here so step definitions stay data.
from __future__ import annotations

import os
import platform as _platform
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .model import HostTarget, Platform


_ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8": "arm64",
    "riscv64": "riscv64",
    "i386": "ia32",
    "i686": "ia32",
    "x86": "ia32",
    "armv7l": "arm",
}


def normalize_architecture(machine: str) -> str:
    return _ARCH_ALIASES.get(machine.lower(), machine.lower())


def normalize_platform(system: str) -> Platform:
    system = system.lower()
    if system.startswith("win"):
        return Platform.WINDOWS
    if system in ("darwin", "macos", "mac"):
        return Platform.MACOS
    if system == "linux":
        return Platform.LINUX
    raise ValueError(f"Unsupported platform: {system}")


def detect_host() -> HostTarget:
    """
    Describe the machine stepbuild is running on.

    Unix-likes other than linux and macos (the BSDs, solaris, ...) get the
    linux policy: same separator, no suffixes, sudo for elevation.
    """
    try:
        host_platform = normalize_platform(_platform.system())
    except ValueError:
        host_platform = Platform.LINUX
    return HostTarget(
        platform=host_platform,
        architecture=normalize_architecture(_platform.machine()),
    )


@dataclass(frozen=True)
class PlatformPolicy:
    """
    Capability set for one platform: path separator, executable/script
    suffixes, program lookup and how elevated launches are requested.
    """
    platform: Platform
    path_separator: str
    executable_suffix: str
    script_suffix: str

    @property
    def is_windows(self) -> bool:
        return self.platform is Platform.WINDOWS

    def executable(self, name: str) -> str:
        """`name` with the platform's executable suffix (e.g. `dart.exe`)."""
        if self.executable_suffix and not name.endswith(self.executable_suffix):
            return name + self.executable_suffix
        return name

    def script(self, name: str) -> str:
        """`name` with the platform's wrapper-script suffix (e.g. `gclient.bat`)."""
        if self.script_suffix and not name.endswith(self.script_suffix):
            return name + self.script_suffix
        return name

    def resolve_program(self, program: str, cwd: str | Path | None = None) -> Optional[str]:
        """
        Resolve a program to something that can be spawned.

        Bare names are looked up on PATH. Anything containing a path separator
        is treated as a path (relative to `cwd`) and must exist.

        Returns:
            The resolved path, or None when nothing matches.
        """
        if "/" in program or "\\" in program:
            candidate = Path(program)
            if not candidate.is_absolute() and cwd is not None:
                candidate = Path(cwd) / candidate
            if candidate.is_file():
                return str(candidate)
            # scripts shipped without suffix on unix have a .bat sibling on windows
            for suffix in (self.executable_suffix, self.script_suffix):
                if suffix and Path(str(candidate) + suffix).is_file():
                    return str(candidate) + suffix
            return None
        return shutil.which(program)

    def elevate(self, argv: List[str]) -> List[str]:
        """
        Wrap an argv so the process is started with administrator/root rights.

        On unix `sudo` is prepended unless we already are root. On windows the
        program is started through PowerShell `Start-Process -Verb RunAs`,
        which waits for the process and forwards its exit code.
        """
        if self.is_windows:
            program, args = argv[0], argv[1:]
            arg_list = ",".join(_ps_quote(_win_arg(a)) for a in args) or "@()"
            script = (
                f"$p = Start-Process -FilePath {_ps_quote(program)} "
                f"-ArgumentList {arg_list} -Verb RunAs -Wait -PassThru; "
                "exit $p.ExitCode"
            )
            return ["powershell", "-NoProfile", "-NonInteractive", "-Command", script]

        if _is_root():
            return list(argv)
        return ["sudo", *argv]


def _is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _win_arg(value: str) -> str:
    # Start-Process joins -ArgumentList with plain spaces
    if value and not any(c.isspace() or c == '"' for c in value):
        return value
    escaped = value.replace('"', '\\"')
    trailing = len(escaped) - len(escaped.rstrip("\\"))
    return '"' + escaped + "\\" * trailing + '"'


POLICIES = {
    Platform.LINUX: PlatformPolicy(Platform.LINUX, "/", "", ""),
    Platform.MACOS: PlatformPolicy(Platform.MACOS, "/", "", ""),
    Platform.WINDOWS: PlatformPolicy(Platform.WINDOWS, "\\", ".exe", ".bat"),
}


def policy_for(platform: Platform) -> PlatformPolicy:
    return POLICIES[platform]

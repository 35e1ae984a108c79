# targets/dart_sdk.py
# Fetch and build the forked Dart SDK (cross compilers + AOT runtimes).
from __future__ import annotations

from pathlib import Path

from ..dsl import cmd, ensure_programs, step, target
from ..environment import Environment
from ..model import Platform

DEPOT_TOOLS_URL = "https://chromium.googlesource.com/chromium/tools/depot_tools.git"
UPSTREAM_SDK_URL = "https://dart.googlesource.com/sdk.git"
FORKED_SDK_URL = "https://github.com/zopnote/dartcc-sdk.git"

ARCHITECTURES = {
    Platform.LINUX: ["x64", "arm64", "riscv64"],
    Platform.WINDOWS: ["x64", "arm64"],
    Platform.MACOS: ["arm64"],
}


# ---------------------------------------------------------------------
# depot_tools
# ---------------------------------------------------------------------

def _configure_depot_tools(env: Environment) -> None:
    env.vars["depot_tools_url"] = DEPOT_TOOLS_URL
    env.vars["depot_tools_path"] = env.path(DEPOT_TOOLS_URL.rstrip("/").split("/")[-1].replace(".git", ""))


def _depot_tools_missing(env: Environment) -> bool:
    # later steps only patch a fresh clone
    env.vars["depot_tools_existed"] = Path(env.vars.get_str("depot_tools_path")).is_dir()
    return not env.vars["depot_tools_existed"]


def _point_fetch_config_to_fork(env: Environment) -> bool:
    config = Path(env.vars.get_str("depot_tools_path"), "fetch_configs", "dart.py")
    content = config.read_text(encoding="utf-8")
    config.write_text(content.replace(UPSTREAM_SDK_URL, FORKED_SDK_URL), encoding="utf-8")
    return True


# ---------------------------------------------------------------------
# SDK checkout
# ---------------------------------------------------------------------

def _configure_fetch(env: Environment) -> None:
    # otherwise depot_tools downloads google's own C++ toolchain
    if env.policy.is_windows:
        env.vars["DEPOT_TOOLS_WIN_TOOLCHAIN"] = 0


def _configure_gclient(env: Environment) -> None:
    env.vars["dart_sdk_path"] = env.path("sdk")
    env.vars["gclient_script_file"] = str(
        Path(env.vars.get_str("depot_tools_path"), env.policy.script("gclient"))
    )


# ---------------------------------------------------------------------
# SDK build
# ---------------------------------------------------------------------

def _configure_build(env: Environment) -> None:
    archs = list(ARCHITECTURES[env.target.platform])
    sdk = env.vars.get_str("dart_sdk_path")
    out_dir = "xcodebuild" if env.target.platform is Platform.MACOS else "out"

    env.vars["dart_architectures"] = archs
    env.vars["dart_binaries_paths"] = [str(Path(sdk, out_dir, "Product" + a.upper())) for a in archs]
    env.vars["dart_dependency_python"] = (
        str(Path(env.vars.get_str("depot_tools_path"), "python3.bat")) if env.policy.is_windows else "python"
    )


def _binaries_missing(env: Environment) -> bool:
    return not all(Path(p).is_dir() for p in env.vars.get_list("dart_binaries_paths"))


def _build_command(env: Environment):
    sdk = env.vars.get_str("dart_sdk_path")
    return cmd(
        env.vars.get_str("dart_dependency_python"),
        str(Path(sdk, "tools", "build.py")),
        "--mode",
        "product",
        "--arch",
        ",".join(env.vars.get_list("dart_architectures")),
        "create_cc_all",
        cwd=sdk,
    )


steps = target(
    ensure_programs("python", "git", "dart"),
    step(
        "Clone depot tools repository",
        configure=_configure_depot_tools,
        condition=_depot_tools_missing,
        command=lambda env: cmd("git", "clone", env.vars.get_str("depot_tools_url")),
        exit_fail=False,
    ),
    step(
        "Set repository url",
        condition=lambda env: not env.vars.get_bool("depot_tools_existed"),
        run=_point_fetch_config_to_fork,
    ),
    step(
        "Fetch the dart sdk",
        configure=_configure_fetch,
        condition=lambda env: not Path(env.path("sdk")).is_dir(),
        command=lambda env: cmd(
            str(Path(env.vars.get_str("depot_tools_path"), "fetch")),
            "dart",
            administrator=env.policy.is_windows,
        ),
        spinner=True,
    ),
    step(
        "Synchronize gclient dependencies",
        configure=_configure_gclient,
        condition=lambda env: not Path(env.path(".gclient_previous_sync_commits")).is_file(),
        command=lambda env: cmd(
            env.vars.get_str("gclient_script_file"),
            "sync",
            cwd=env.vars.get_str("dart_sdk_path"),
            administrator=True,
        ),
        spinner=True,
    ),
    step(
        "Resolve dart package dependencies",
        condition=lambda env: not Path(
            env.vars.get_str("dart_sdk_path"), ".dart_tool", "package_config.json"
        ).is_file(),
        command=lambda env: cmd(
            "dart", "pub", "get", cwd=env.vars.get_str("dart_sdk_path"), administrator=True
        ),
        spinner=True,
    ),
    step(
        "Build the required Dart SDK binaries",
        configure=_configure_build,
        condition=_binaries_missing,
        command=_build_command,
    ),
)

# cli.py
from __future__ import annotations

import sys
from typing import List, Optional

import click

from . import settings
from .environment import Environment
from .errors import UserInputError
from .executor import PipelineExecutor
from .model import HostTarget, Platform
from .platforms import detect_host, normalize_architecture
from .registry import default_registry
from .ui.console import Console, set_console


def parse_steps(value: str | None) -> Optional[List[int]]:
    """
    Parse a --steps value like "2;5;1" into 1-based indices.

    Returns:
        None when no value was given (run everything)

    Raises:
        UserInputError: empty value or a token that is not an integer
    """
    if value is None:
        return None
    if not value.strip():
        raise UserInputError("Missing value for --steps.", hint='Example: --steps "1;3"')

    indices: List[int] = []
    for token in value.split(";"):
        token = token.strip()
        try:
            index = int(token)
        except ValueError:
            raise UserInputError(
                f"Invalid step index '{token}' in --steps value '{value}'.",
                hint='Separate 1-based step indices with ";", e.g. --steps "2;5;1"',
            ) from None
        if index not in indices:
            indices.append(index)
    return indices


def _target_description(host: HostTarget, platform: str | None, arch: str | None) -> HostTarget:
    if platform is None and arch is None:
        return host
    return HostTarget(
        platform=Platform(platform) if platform else host.platform,
        architecture=normalize_architecture(arch) if arch else host.architecture,
    )


def _fail(console: Console, title: str, e: UserInputError) -> None:
    console.print_error(title, e.message, suggestion=e.hint)
    sys.exit(1)


@click.group()
@click.option("--verbose", is_flag=True, default=False, help="Print debug information.")
@click.pass_context
def cli(ctx, verbose):
    """stepbuild — conditional step pipelines for bootstrapping toolchains."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("target", required=False, default="")
@click.option("--verbose", is_flag=True, default=False, help="Print debug information.")
@click.option("--force", is_flag=True, default=False, help="Ignore conditions and enforce the execution of steps.")
@click.option(
    "--steps",
    "steps_value",
    default=None,
    metavar='"I;J;K"',
    help='Just execute several, specified, steps (e.g. "1", "3", "2;5;1").',
)
@click.option("--work-root", default=None, help=f"Root of the per-target work directories [default: {settings.WORK_ROOT}]")
@click.option("--targets-file", default=settings.TARGETS_FILE, help="Python file defining extra targets")
@click.option(
    "--target-platform",
    type=click.Choice([p.value for p in Platform]),
    default=None,
    help="Platform to build for (defaults to the host)",
)
@click.option("--target-arch", default=None, help="Architecture to build for (defaults to the host)")
@click.option("--spinner/--no-spinner", default=settings.SPINNER, help="Show spinners for long running steps")
@click.pass_context
def run(ctx, target, verbose, force, steps_value, work_root, targets_file, target_platform, target_arch, spinner):
    """Run the steps of TARGET."""
    # accepted before or after the subcommand
    verbose = verbose or ctx.obj.get("verbose", False)
    console = Console(debug=verbose, spinner=spinner)
    set_console(console)

    try:
        registry = default_registry(targets_file)
    except UserInputError as e:
        _fail(console, "Invalid targets file", e)

    if not target:
        console.print_error(
            "No target",
            "Please specify a target.",
            details=[f"Targets: {', '.join(registry.names)}"],
            suggestion="Usage: stepbuild run TARGET [--force] [--steps \"1;3\"] [--verbose]",
        )
        sys.exit(1)

    try:
        steps = registry.resolve(target)
        indices = parse_steps(steps_value)
    except UserInputError as e:
        _fail(console, "Invalid input", e)

    host = detect_host()
    environment = Environment(
        target,
        vars={"verbose": verbose},
        host=host,
        target=_target_description(host, target_platform, target_arch),
        work_root=work_root,
    )
    console.print_debug(f"The specified argument is {target}")
    console.print_debug(f"Host: {environment.host}, target: {environment.target}")
    if indices is not None:
        console.print_debug(f"The following steps should be executed: {', '.join(map(str, indices))}.")

    console.print_run_started(target, len(steps), environment.work_directory_path)
    executor = PipelineExecutor()
    try:
        if indices is not None:
            outcome = executor.run_selected(environment, steps, indices, force=force)
        else:
            outcome = executor.run_all(environment, steps, force=force)
    except UserInputError as e:
        _fail(console, "Invalid input", e)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)

    if not outcome:
        console.print_error(
            "Build failed",
            f"An error occurred at step {outcome.failed_index}.",
            details=[outcome.message] if outcome.message else None,
        )
        sys.exit(1)

    if outcome.tolerated_indices:
        console.print_info(
            "Tolerated failures at steps " + ", ".join(map(str, outcome.tolerated_indices)) + "."
        )
    if indices is not None:
        console.print_info("Executed steps " + ", ".join(map(str, indices)) + ".")
    else:
        console.print_info("Executed successfully.")


@cli.command(name="list")
@click.option("--targets-file", default=settings.TARGETS_FILE, help="Python file defining extra targets")
@click.pass_context
def list_targets(ctx, targets_file):
    """List the available targets and their steps."""
    console = Console(debug=ctx.obj.get("verbose", False))
    set_console(console)
    console.print_debug(f"Targets file: {targets_file or '(none)'}")
    try:
        registry = default_registry(targets_file)
    except UserInputError as e:
        _fail(console, "Invalid targets file", e)

    for name in registry:
        steps = registry.resolve(name)
        console.print_info(f"{name} ({len(steps)} steps)")
        for i, s in enumerate(steps, start=1):
            console.print_info(f"  {i}. {s.name}")


if __name__ == "__main__":
    cli()

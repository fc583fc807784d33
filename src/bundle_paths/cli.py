"""
bundle-paths CLI - Check path templates the way agents will resolve them.

Lets bundle authors see what a template expands to, and whether a path
would be accepted, without starting an agent.

Usage:
    bundle-paths resolve requirements-workflow "{bundle-root}/workflows/intake/workflow.yaml"
    bundle-paths resolve acme "{config_source}:output_folder/{date}.md" --config acme.yaml
    bundle-paths check acme /srv/app/data/conversations/abc/out.md --write
    bundle-paths --project-root /srv/app context acme
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core.bundle_config import load_bundle_config, read_config_file
from .core.exceptions import PathResolverError
from .core.path_context import PathContext, create_path_context
from .core.path_security import validate_path_security, validate_write_path
from .core.settings import PathResolverSettings, get_settings, set_settings
from .core.variable_resolver import resolve_path

console = Console()
err_console = Console(stderr=True)


def _build_context(args: argparse.Namespace, settings: PathResolverSettings) -> PathContext:
    context = create_path_context(args.bundle, settings=settings)
    if getattr(args, "config", None):
        return context.with_config(read_config_file(args.config))
    if getattr(args, "no_bundle_config", False):
        return context
    return context.with_config(load_bundle_config(context.bundle_root))


def _cmd_resolve(args: argparse.Namespace, settings: PathResolverSettings) -> int:
    context = _build_context(args, settings)
    resolved = resolve_path(args.template, context)
    console.print(resolved, markup=False, highlight=False, soft_wrap=True)
    return 0


def _cmd_check(args: argparse.Namespace, settings: PathResolverSettings) -> int:
    context = _build_context(args, settings)
    if args.write:
        validate_write_path(args.path, context, settings=settings)
    else:
        validate_path_security(args.path, context)
    mode = "write" if args.write else "read"
    console.print(f"[green]✓[/green] Allowed for {mode}: ", end="")
    console.print(args.path, markup=False, highlight=False, soft_wrap=True)
    return 0


def _cmd_context(args: argparse.Namespace, settings: PathResolverSettings) -> int:
    context = _build_context(args, settings)

    table = Table(title=f"Path context: {args.bundle}")
    table.add_column("Variable", style="cyan")
    table.add_column("Value")
    table.add_row("{bundle-root}", context.bundle_root)
    table.add_row("{core-root}", context.core_root)
    table.add_row("{project-root}", context.project_root)
    console.print(table)

    names = context.config_variables
    if names:
        console.print(f"[bold]Config variables:[/bold] {', '.join(names)}", highlight=False)
    else:
        console.print("[dim]No config variables[/dim]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bundle-paths",
        description="Resolve and validate bundle path templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--project-root", type=Path, help="Project root (default: PROJECT_ROOT or cwd)"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_config_options(sub: argparse.ArgumentParser) -> None:
        group = sub.add_mutually_exclusive_group()
        group.add_argument(
            "--config", type=Path, help="Read config variables from this YAML file"
        )
        group.add_argument(
            "--no-bundle-config",
            action="store_true",
            help="Do not load the bundle's own config file",
        )

    resolve = subparsers.add_parser("resolve", help="Resolve a path template")
    resolve.add_argument("bundle", help="Bundle name")
    resolve.add_argument("template", help="Path template")
    add_config_options(resolve)
    resolve.set_defaults(handler=_cmd_resolve)

    check = subparsers.add_parser("check", help="Validate an absolute path")
    check.add_argument("bundle", help="Bundle name")
    check.add_argument("path", help="Absolute path to validate")
    check.add_argument(
        "--write", action="store_true", help="Also require the path to be writable"
    )
    add_config_options(check)
    check.set_defaults(handler=_cmd_check)

    context = subparsers.add_parser("context", help="Show a bundle's roots and variables")
    context.add_argument("bundle", help="Bundle name")
    add_config_options(context)
    context.set_defaults(handler=_cmd_context)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = get_settings()
    if args.project_root is not None:
        settings = PathResolverSettings(
            **{**settings.model_dump(), "project_root": args.project_root}
        )
        set_settings(settings)

    try:
        return args.handler(args, settings)
    except PathResolverError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        return 1
    except ValueError as e:
        err_console.print(f"[red]Invalid input:[/red] {escape(str(e))}", highlight=False)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())

"""
Command-line interface for Kiln.

This module provides the `kiln` CLI tool for building C/C++ projects.
"""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from kiln import __version__
from kiln.build.flavor import BuildFlavor
from kiln.build.modules import ModuleError, ModuleManager
from kiln.build.orchestrator import BuildOrchestrator, BuildResult
from kiln.cli_utils import ErrorFormatter, PathValidator
from kiln.config.layout import BuildLayout
from kiln.config.project_config import ProjectConfigError
from kiln.console import Console
from kiln.logging_config import setup_logging, shutdown_logging

BUILD_TARGETS = ("debug", "release", "module", "lib")
LIBRARY_KINDS = ("static", "dynamic")


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    project_dir: Path
    target: str = "debug"
    name: Optional[str] = None
    release: bool = False
    progress: bool = True
    verbose: bool = False


@dataclass
class ModuleArgs:
    """Arguments for the module command."""

    project_dir: Path
    action: str
    name: str
    verbose: bool = False


def _finish(result: BuildResult) -> None:
    if result.success:
        ErrorFormatter.print_success(result.message)
        sys.exit(0)
    ErrorFormatter.print_error("Build failed!", result.message)
    sys.exit(1)


def build_command(args: BuildArgs) -> None:
    """Build the project, a module or a library.

    Examples:
        kiln build                      # Debug build
        kiln build release              # Release build
        kiln build module net           # Debug build of module 'net'
        kiln build module net -r        # Release build of module 'net'
        kiln build lib static           # One lib{stem}.a per source
        kiln build lib dynamic          # One lib{stem}.so per source
    """
    if args.target in ("module", "lib") and not args.name:
        ErrorFormatter.print_error("Missing name", f"kiln build {args.target} needs a name")
        sys.exit(2)

    try:
        console = Console()
        orchestrator = BuildOrchestrator(args.project_dir, console=console, show_progress=args.progress)

        if args.target == "module":
            result = ModuleManager(args.project_dir, orchestrator=orchestrator, console=console).build(
                args.name, release=args.release
            )
        elif args.target == "lib":
            result = orchestrator.build_library(BuildFlavor.from_name(args.name))
        else:
            result = orchestrator.build(BuildFlavor.from_name(args.target))

        _finish(result)

    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def module_command(args: ModuleArgs) -> None:
    """Add or remove a module.

    Examples:
        kiln module add net             # Register src/**/net as module 'net'
        kiln module remove net          # Forget it and delete build/module/net
    """
    try:
        manager = ModuleManager(args.project_dir)
        if args.action == "add":
            manager.add(args.name)
        else:
            manager.remove(args.name)
        sys.exit(0)

    except (ModuleError, ProjectConfigError) as e:
        ErrorFormatter.print_error("Module error", str(e))
        sys.exit(1)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kiln",
        description="Kiln - incremental build tool for C/C++ projects",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"kiln {__version__}",
    )
    parser.add_argument(
        "-C",
        "--project-dir",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show tracebacks for unexpected errors",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build the project, a module or a library",
    )
    build_parser.add_argument(
        "target",
        nargs="?",
        default="debug",
        choices=BUILD_TARGETS,
        help="What to build (default: debug)",
    )
    build_parser.add_argument(
        "name",
        nargs="?",
        default=None,
        help="Module name (build module) or library kind: static|dynamic (build lib)",
    )
    build_parser.add_argument(
        "-r",
        "--release",
        action="store_true",
        help="Release flavor for module builds",
    )
    build_parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Hide progress bars",
    )

    # Module command
    module_parser = subparsers.add_parser(
        "module",
        help="Manage modules",
    )
    module_parser.add_argument("action", choices=("add", "remove"), help="Operation")
    module_parser.add_argument("name", help="Module name")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Kiln - incremental build tool for C/C++ projects."""
    parser = create_parser()
    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    project_dir = parsed_args.project_dir
    PathValidator.validate_project_dir(project_dir)

    layout = BuildLayout(project_dir)
    PathValidator.validate_config(project_dir, layout.config_file)
    setup_logging(layout)
    try:
        _dispatch(parser, parsed_args, project_dir)
    finally:
        shutdown_logging()


def _dispatch(parser: argparse.ArgumentParser, parsed_args: argparse.Namespace, project_dir: Path) -> None:
    if parsed_args.command == "build":
        target = parsed_args.target
        if target == "module" and not parsed_args.name:
            parser.error("build module requires a module name")
        if target == "lib" and parsed_args.name not in LIBRARY_KINDS:
            parser.error("build lib requires 'static' or 'dynamic'")
        if target in ("debug", "release") and parsed_args.name:
            parser.error(f"unexpected argument for build {target}: {parsed_args.name}")

        build_args = BuildArgs(
            project_dir=project_dir,
            target=target,
            name=parsed_args.name,
            release=parsed_args.release,
            progress=not parsed_args.no_progress,
            verbose=parsed_args.verbose,
        )
        build_command(build_args)
    elif parsed_args.command == "module":
        module_args = ModuleArgs(
            project_dir=project_dir,
            action=parsed_args.action,
            name=parsed_args.name,
            verbose=parsed_args.verbose,
        )
        module_command(module_args)


if __name__ == "__main__":
    main()

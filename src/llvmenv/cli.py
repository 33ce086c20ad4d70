"""Command-line surface for llvmenv.

Usage:
    llvmenv init
    llvmenv build-entry llvm-mirror -j 8
    llvmenv local llvm-mirror
    source <(llvmenv zsh)
"""

from __future__ import annotations

import argparse
import subprocess
import sys
import warnings
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from llvmenv.entry import EntryWarning, LocalSource, parse_generator
from llvmenv.errors import LlvmenvError, exit_code_for
from llvmenv.manager import Manager
from llvmenv.observability import ProgressEvent, StructuredLogger, format_record
from llvmenv.resolver import SelectionSource


def _stderr_sink(record: dict[str, Any]) -> None:
    print(format_record(record), file=sys.stderr)


def _stderr_progress(event: ProgressEvent) -> None:
    if event.current is not None and event.total:
        percent = event.current * 100 // event.total
        print(f"{event.name}: {event.message} {percent}%", file=sys.stderr)
    else:
        print(f"{event.name}: {event.message}", file=sys.stderr)


def _show_warning(message: Warning | str, category: type[Warning], *_: object, **__: object) -> None:
    print(f"warning: {message}", file=sys.stderr)


def cmd_init(manager: Manager, args: argparse.Namespace) -> int:
    path = manager.init_config()
    print(f"Created {path}")
    return 0


def cmd_entries(manager: Manager, args: argparse.Namespace) -> int:
    for entry in manager.entries():
        print(entry.name)
    return 0


def cmd_builds(manager: Manager, args: argparse.Namespace) -> int:
    for build in manager.builds():
        print(build.name)
    return 0


def cmd_build_entry(manager: Manager, args: argparse.Namespace) -> int:
    generator = parse_generator(args.builder) if args.builder else None
    outcome = manager.build_entry(
        args.name,
        update=args.update,
        clean=args.clean,
        jobs=args.jobs,
        generator=generator,
    )
    print(f"{outcome.name}: {outcome.state.value} ({outcome.install_prefix})")
    return 0


def cmd_current(manager: Manager, args: argparse.Namespace) -> int:
    resolution = manager.current(Path.cwd())
    if args.verbose:
        print(f"{resolution.name} ({_describe_source(resolution.source, resolution.marker)})")
    else:
        print(resolution.name)
    return 0


def cmd_prefix(manager: Manager, args: argparse.Namespace) -> int:
    resolution = manager.current(Path.cwd())
    if args.verbose:
        print(f"{resolution.prefix} ({_describe_source(resolution.source, resolution.marker)})")
    else:
        print(resolution.prefix)
    return 0


def cmd_version(manager: Manager, args: argparse.Namespace) -> int:
    name = args.name or manager.current(Path.cwd()).name
    if args.llvm_sys:
        print(manager.llvm_sys_variable(name))
        return 0
    major, minor, patch = manager.version(name)
    if args.major:
        print(major)
    elif args.minor:
        print(minor)
    elif args.patch:
        print(patch)
    else:
        print(f"{major}.{minor}.{patch}")
    return 0


def cmd_global(manager: Manager, args: argparse.Namespace) -> int:
    manager.set_global(args.name)
    return 0


def cmd_local(manager: Manager, args: argparse.Namespace) -> int:
    manager.set_local(args.name, args.path or Path.cwd())
    return 0


def cmd_remove(manager: Manager, args: argparse.Namespace) -> int:
    entry = manager.store().load().get(args.name)
    keep_source = not args.source and not (entry is not None and isinstance(entry.source, LocalSource))
    manager.remove(args.name, keep_source=keep_source)
    return 0


def cmd_archive(manager: Manager, args: argparse.Namespace) -> int:
    path = manager.archive(args.name, Path(args.output or Path.cwd()))
    print(path)
    return 0


def cmd_expand(manager: Manager, args: argparse.Namespace) -> int:
    build = manager.expand(Path(args.path))
    print(build.name)
    return 0


def cmd_edit(manager: Manager, args: argparse.Namespace) -> int:
    return subprocess.call(manager.edit_command())


def cmd_shell(manager: Manager, args: argparse.Namespace) -> int:
    sys.stdout.write(manager.shell_script(args.command))
    return 0


COMMANDS = {
    "init": cmd_init,
    "entries": cmd_entries,
    "builds": cmd_builds,
    "build-entry": cmd_build_entry,
    "current": cmd_current,
    "prefix": cmd_prefix,
    "version": cmd_version,
    "global": cmd_global,
    "local": cmd_local,
    "remove": cmd_remove,
    "archive": cmd_archive,
    "expand": cmd_expand,
    "edit": cmd_edit,
    "zsh": cmd_shell,
    "bash": cmd_shell,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="llvmenv", description="Manage multiple LLVM/Clang builds")
    parser.add_argument("--log", action="store_true", help="Print structured log records to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Write the default entry.toml")
    sub.add_parser("entries", help="List usable build entries")
    sub.add_parser("builds", help="List usable builds")

    build_p = sub.add_parser("build-entry", help="Fetch, configure, compile, and install an entry")
    build_p.add_argument("name")
    build_p.add_argument("-u", "--update", action="store_true", help="Update the source tree before building")
    build_p.add_argument("-c", "--clean", action="store_true", help="Remove the build directory first")
    build_p.add_argument("-j", "--jobs", type=int, default=None, help="Parallel compile jobs")
    build_p.add_argument("-G", "--builder", default=None, help="Override the CMake generator")

    current_p = sub.add_parser("current", help="Show the name of the active build")
    current_p.add_argument("-v", "--verbose", action="store_true")
    prefix_p = sub.add_parser("prefix", help="Show the install prefix of the active build")
    prefix_p.add_argument("-v", "--verbose", action="store_true")

    version_p = sub.add_parser("version", help="Show the LLVM version of a build")
    version_p.add_argument("-n", "--name", default=None, help="Build name (default: active build)")
    parts = version_p.add_mutually_exclusive_group()
    parts.add_argument("--major", action="store_true")
    parts.add_argument("--minor", action="store_true")
    parts.add_argument("--patch", action="store_true")
    parts.add_argument("--llvm-sys", action="store_true", help="Print the llvm-sys prefix variable name")

    global_p = sub.add_parser("global", help="Select the build used everywhere")
    global_p.add_argument("name")
    local_p = sub.add_parser("local", help="Select the build used in a directory")
    local_p.add_argument("name")
    local_p.add_argument("-p", "--path", default=None, help="Directory to write .llvmenv into")

    remove_p = sub.add_parser("remove", help="Remove a build")
    remove_p.add_argument("name")
    remove_p.add_argument("--source", action="store_true", help="Also remove the fetched source tree")

    archive_p = sub.add_parser("archive", help="Pack a build into <name>.tar.xz")
    archive_p.add_argument("name")
    archive_p.add_argument("-o", "--output", default=None, help="Directory for the archive")
    expand_p = sub.add_parser("expand", help="Unpack an archived build")
    expand_p.add_argument("path")

    sub.add_parser("edit", help="Open entry.toml in $EDITOR")
    sub.add_parser("zsh", help="Print the zsh integration script")
    sub.add_parser("bash", help="Print the bash integration script")
    return parser


def main(argv: Sequence[str] | None = None, *, manager: Manager | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if manager is None:
            logger = StructuredLogger(sink=_stderr_sink if args.log else None)
            manager = Manager.from_env(logger=logger, observer=_stderr_progress)
        with warnings.catch_warnings():
            warnings.simplefilter("always", EntryWarning)
            warnings.showwarning = _show_warning
            return COMMANDS[args.command](manager, args)
    except LlvmenvError as exc:
        print(f"error[{exc.code}]: {exc}", file=sys.stderr)
        return exit_code_for(exc)


def _describe_source(source: SelectionSource, marker: Path | None) -> str:
    if source is SelectionSource.DEFAULT:
        return "default"
    return f"set by {marker}"


if __name__ == "__main__":
    raise SystemExit(main())

#!/usr/bin/env python3
"""Command-line interface for OverlayIO.

This module provides the `overlayio` tool, a thin front end over
FileStreamWrapper:
- Argument parsing and validation
- Configuration file loading and CLI overrides
- File commands (cat, stat, ls, mkdir, rm, rmdir, mv)
- Mounting the wrapper through FUSE

Example:
    >>> from overlayio.cli import main
    >>> main(["--cache-root", "/srv/www", "cat", "/srv/www/index.html"])
"""

import argparse
import os
import stat
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

from overlayio.core.constants import OVERLAYIO_VERSION, MkdirOption, OpenOption
from overlayio.core.validators import ValidationError, validate_permissions
from overlayio.infrastructure.config_manager import ConfigError, ConfigManager, ConfigSource
from overlayio.infrastructure.logger import Logger
from overlayio.main import build_logger, build_wrapper, mount
from overlayio.stream.wrapper import FileStreamWrapper

DESCRIPTION = "OverlayIO - filesystem access through a static content cache"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
    """
    parser = argparse.ArgumentParser(
        prog="overlayio",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Read a file, preferring the content cache compiled from /srv/www
  overlayio --cache-root /srv/www cat /srv/www/index.html

  # Resolve a relative file on the include path
  overlayio --include-path /usr/share/php cat --include-path-search lib.php

  # Create a directory and its missing parents
  overlayio mkdir -p /tmp/a/b/c

  # Mount the wrapper
  overlayio -c overlayio.yaml mount /mnt/overlay --foreground
        """,
    )

    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {OVERLAYIO_VERSION}")
    parser.add_argument("-c", "--config", metavar="FILE", help="Configuration file path (YAML format)")
    parser.add_argument("--source-root", metavar="DIR", help="Directory relative paths resolve against")
    parser.add_argument(
        "--include-path", metavar="DIR", action="append", help="Include-path root (repeatable)"
    )
    parser.add_argument("--cache-root", metavar="DIR", help="Compile DIR into the static content cache")
    parser.add_argument(
        "--direct-copy", action="store_true", help="Use direct copy for cross-device renames"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", metavar="FILE", help="Also log to FILE")

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    cat = commands.add_parser("cat", help="Print a file")
    cat.add_argument("path")
    cat.add_argument(
        "--include-path-search", action="store_true", help="Search the include path for PATH"
    )

    stat_cmd = commands.add_parser("stat", help="Show file metadata")
    stat_cmd.add_argument("path")
    stat_cmd.add_argument("--cache", action="store_true", help="Use cache-aware translation")
    stat_cmd.add_argument("--no-follow", action="store_true", help="Do not follow symlinks (lstat)")

    ls = commands.add_parser("ls", help="List a directory")
    ls.add_argument("path", nargs="?", default=".")
    ls.add_argument("-a", "--all", action="store_true", help="Include '.' and '..'")

    mkdir = commands.add_parser("mkdir", help="Create a directory")
    mkdir.add_argument("path")
    mkdir.add_argument("-p", "--parents", action="store_true", help="Create missing parents")
    mkdir.add_argument("-m", "--mode", default="777", help="Permission mode (octal, default 777)")

    rm = commands.add_parser("rm", help="Remove a file")
    rm.add_argument("path")

    rmdir = commands.add_parser("rmdir", help="Remove an empty directory")
    rmdir.add_argument("path")

    mv = commands.add_parser("mv", help="Rename a file")
    mv.add_argument("old")
    mv.add_argument("new")

    mount_cmd = commands.add_parser("mount", help="Mount the wrapper with FUSE")
    mount_cmd.add_argument("mount_point", metavar="MOUNTPOINT")
    mount_cmd.add_argument("--foreground", action="store_true", help="Run in foreground")
    mount_cmd.add_argument("--allow-other", action="store_true", help="Allow other users")
    mount_cmd.add_argument("--read-only", action="store_true", help="Reject all mutations")

    parsed = parser.parse_args(args)
    _validate_arguments(parsed)
    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Raises:
        CLIError: If validation fails
    """
    if args.config:
        config_path = Path(args.config)
        if not config_path.is_file():
            raise CLIError(f"Configuration file does not exist: {args.config}")

    if args.cache_root and not Path(args.cache_root).is_dir():
        raise CLIError(f"Content cache root is not a directory: {args.cache_root}")

    if args.command == "mkdir":
        try:
            args.mode = validate_permissions(args.mode)
        except ValidationError as e:
            raise CLIError(str(e))

    if args.command == "mount":
        mount_path = Path(args.mount_point)
        if not mount_path.is_dir():
            raise CLIError(f"Mount point is not a directory: {args.mount_point}")


def build_config(args: argparse.Namespace) -> ConfigManager:
    """
    Build the configuration manager from a config file and CLI overrides.

    Command-line arguments take precedence over the file and environment.
    """
    try:
        config = ConfigManager(args.config)
    except ConfigError as e:
        raise CLIError(e.message)

    overrides: Dict[str, object] = {}
    if args.source_root:
        overrides["overlayio.source_root"] = os.path.abspath(args.source_root)
    if args.include_path:
        overrides["overlayio.include_path"] = [os.path.abspath(p) for p in args.include_path]
    if args.cache_root:
        overrides["overlayio.content_cache.enabled"] = True
        overrides["overlayio.content_cache.root"] = os.path.abspath(args.cache_root)
    if args.direct_copy:
        overrides["overlayio.use_direct_copy"] = True
    if args.debug:
        overrides["overlayio.logging.level"] = "DEBUG"
    if args.log_file:
        overrides["overlayio.logging.file"] = args.log_file

    for key, value in overrides.items():
        config.set(key, value, source=ConfigSource.CLI_ARGS)

    return config


def _report(status: int, what: str) -> int:
    if status < 0:
        print(f"overlayio: {what}: {os.strerror(-status)}", file=sys.stderr)
        return EXIT_FAILURE
    return EXIT_OK


def cmd_cat(wrapper: FileStreamWrapper, args: argparse.Namespace) -> int:
    options = OpenOption.USE_INCLUDE_PATH if args.include_path_search else OpenOption.NONE
    handle = wrapper.open(args.path, "rb", options)
    if handle is None:
        return EXIT_FAILURE

    with handle:
        while True:
            chunk = handle.read(64 * 1024)
            if not chunk:
                break
            sys.stdout.buffer.write(chunk)
    sys.stdout.flush()
    return EXIT_OK


def cmd_stat(wrapper: FileStreamWrapper, args: argparse.Namespace) -> int:
    buf: Dict[str, object] = {}
    primitive = wrapper.lstat if args.no_follow else wrapper.stat
    status = primitive(args.path, buf, use_file_cache=args.cache)
    if status < 0:
        return _report(status, f"cannot stat '{args.path}'")

    print(f"  File: {wrapper.translate(args.path, args.cache)}")
    print(f"  Size: {buf['st_size']}")
    print(f"  Mode: {stat.filemode(buf['st_mode'])} ({stat.S_IMODE(buf['st_mode']):04o})")
    print(f" Links: {buf['st_nlink']}  Uid: {buf['st_uid']}  Gid: {buf['st_gid']}")
    print(f" Inode: {buf['st_ino']}  Device: {buf['st_dev']}")
    return EXIT_OK


def cmd_ls(wrapper: FileStreamWrapper, args: argparse.Namespace) -> int:
    directory = wrapper.opendir(args.path)
    if directory is None:
        return EXIT_FAILURE

    with directory:
        names = [name for name in directory if args.all or name not in (".", "..")]
    for name in sorted(names):
        print(name)
    return EXIT_OK


def cmd_mkdir(wrapper: FileStreamWrapper, args: argparse.Namespace) -> int:
    options = MkdirOption.RECURSIVE if args.parents else MkdirOption.NONE
    status = wrapper.mkdir(args.path, args.mode, options)
    return _report(status, f"cannot create directory '{args.path}'")


def cmd_rm(wrapper: FileStreamWrapper, args: argparse.Namespace) -> int:
    return _report(wrapper.unlink(args.path), f"cannot remove '{args.path}'")


def cmd_rmdir(wrapper: FileStreamWrapper, args: argparse.Namespace) -> int:
    return _report(wrapper.rmdir(args.path), f"failed to remove '{args.path}'")


def cmd_mv(wrapper: FileStreamWrapper, args: argparse.Namespace) -> int:
    status = wrapper.rename(args.old, args.new)
    return _report(status, f"cannot move '{args.old}' to '{args.new}'")


def cmd_mount(wrapper: FileStreamWrapper, args: argparse.Namespace, logger: Logger) -> int:
    return mount(
        wrapper,
        args.mount_point,
        logger,
        foreground=args.foreground,
        allow_other=args.allow_other,
        readonly=args.read_only,
    )


COMMANDS: Dict[str, Callable[[FileStreamWrapper, argparse.Namespace], int]] = {
    "cat": cmd_cat,
    "stat": cmd_stat,
    "ls": cmd_ls,
    "mkdir": cmd_mkdir,
    "rm": cmd_rm,
    "rmdir": cmd_rmdir,
    "mv": cmd_mv,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit status (0 success, 1 failure, 2 usage error)
    """
    try:
        args = parse_arguments(argv)
        config = build_config(args)
        logger = build_logger(config.section(), name="overlayio.cli")
        wrapper = build_wrapper(config, logger)

        if args.command == "mount":
            return cmd_mount(wrapper, args, logger)
        return COMMANDS[args.command](wrapper, args)

    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    except ConfigError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return EXIT_USAGE

    except BrokenPipeError:
        # Output closed early (e.g. piped into head)
        sys.stderr.close()
        return EXIT_FAILURE

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())

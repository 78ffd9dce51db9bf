#!/usr/bin/env python3
"""storyloop CLI entrypoint."""

import argparse
import logging
import sys
from pathlib import Path

from storyloop.lib.config import ConfigError, load_config
from storyloop.commands import rollback as cmd_rollback_module
from storyloop.commands import reset as cmd_reset_module
from storyloop.commands import run as cmd_run_module
from storyloop.commands import status as cmd_status_module
from storyloop.commands import unblock as cmd_unblock_module


def get_cwd(args) -> Path:
    return Path(args.cwd).resolve() if args.cwd else Path.cwd()


def get_config(args):
    """Load config for the working directory; exits 2 on invalid config."""
    cwd = get_cwd(args)
    config_path = Path(args.config) if args.config else None
    try:
        return load_config(cwd, config_path), cwd
    except ConfigError as e:
        print(f"ERROR: {e}")
        sys.exit(2)


def cmd_run(args):
    config, cwd = get_config(args)
    return cmd_run_module.cmd_run(args, cwd, config)


def cmd_status(args):
    config, cwd = get_config(args)
    return cmd_status_module.cmd_status(args, cwd, config)


def cmd_rollback(args):
    config, cwd = get_config(args)
    return cmd_rollback_module.cmd_rollback(args, cwd, config)


def cmd_unblock(args):
    config, cwd = get_config(args)
    return cmd_unblock_module.cmd_unblock(args, cwd, config)


def cmd_reset(args):
    config, cwd = get_config(args)
    return cmd_reset_module.cmd_reset(args, cwd, config)


def configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Reporter lines are already printed; don't echo them again below DEBUG
    if not verbose:
        logging.getLogger("storyloop.report").setLevel(logging.ERROR + 1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storyloop",
        description="Drive a coding agent through a backlog of stories, one iteration at a time",
    )
    parser.add_argument('--cwd', help='Working directory (default: current directory)')
    parser.add_argument('--config', '-c', help='Config file (default: storyloop.yaml)')
    subparsers = parser.add_subparsers(dest='command')

    # storyloop run
    p_run = subparsers.add_parser('run', help='Run the iteration loop')
    p_run.add_argument('--max-iterations', '-n', type=int, help='Override max iterations')
    p_run.add_argument('--dry-run', action='store_true', help='Simulate without agent, git or file changes')
    p_run.add_argument('--story', '-s', help='Work only on this story ID')
    p_run.add_argument('--verbose', '-v', action='store_true', help='Show debug output')
    p_run.set_defaults(func=cmd_run)

    # storyloop status
    p_status = subparsers.add_parser('status', help='Show backlog progress and run state')
    p_status.add_argument('--verbose', '-v', action='store_true', help='Show criteria and iteration history')
    p_status.set_defaults(func=cmd_status)

    # storyloop rollback
    p_rollback = subparsers.add_parser('rollback', help='Roll back a story or the whole run')
    p_rollback.add_argument('story', nargs='?', help='Story ID to roll back')
    p_rollback.add_argument('--all', action='store_true', help='Roll back every iteration')
    p_rollback.add_argument('--force', action='store_true', help='Actually reset (otherwise only show what would happen)')
    p_rollback.set_defaults(func=cmd_rollback)

    # storyloop unblock
    p_unblock = subparsers.add_parser('unblock', help='Make a blocked story eligible again')
    p_unblock.add_argument('story', help='Story ID')
    p_unblock.set_defaults(func=cmd_unblock)

    # storyloop reset
    p_reset = subparsers.add_parser('reset', help='Discard run history for the current branch')
    p_reset.add_argument('--force', action='store_true', help='Do not ask for confirmation')
    p_reset.set_defaults(func=cmd_reset)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, 'func', None):
        parser.print_help()
        return 2

    configure_logging(getattr(args, 'verbose', False))
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())

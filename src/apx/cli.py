"""Provide the `apx` command-line entrypoint."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .command import Command
from .commands import Doctor, Install, Link, Publish, Uninstall
from .constants import APX_VERSION, LOG_FILE_NAME, ApxError
from .environment import Environment
from .logging_utils import configure_logging, resolve_log_level
from .tasks import NullRenderer, Renderer


def _install(args: argparse.Namespace, env: Environment, renderer: Optional[Renderer]) -> int:
    return Install(env, renderer).install(args.package, dev=args.dev, force=args.force)


def _uninstall(args: argparse.Namespace, env: Environment, renderer: Optional[Renderer]) -> int:
    return Uninstall(env, renderer).uninstall(args.package, dev=args.dev, hard=args.hard)


def _link(args: argparse.Namespace, env: Environment, renderer: Optional[Renderer]) -> int:
    return Link(env, renderer).link(args.path, name=args.name, dev=args.dev)


def _unlink(args: argparse.Namespace, env: Environment, renderer: Optional[Renderer]) -> int:
    return Link(env, renderer).unlink(
        name=args.name, all_links=args.all, dev=args.dev, hard=args.hard, target=args.target,
    )


def _doctor(args: argparse.Namespace, env: Environment, renderer: Optional[Renderer]) -> int:
    return Doctor(env, renderer).doctor()


def _publish(args: argparse.Namespace, env: Environment, renderer: Optional[Renderer]) -> int:
    return Publish(env, renderer).publish(args.newversion)


def _parse_value(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


def _config(args: argparse.Namespace, env: Environment, renderer: Optional[Renderer]) -> int:
    if args.value is None:
        value = env.get_default(args.key)
        if value is None:
            sys.stderr.write(f"{args.key} is not set\n")
            return 1
        sys.stdout.write(f"{value if isinstance(value, str) else json.dumps(value)}\n")
        return 0
    env.set_default(args.key, _parse_value(args.value))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='apx', description='Atom package manager')
    parser.add_argument('--version', '-v', action='version', version=f'apx {APX_VERSION}')
    parser.add_argument('--verbose', action='store_true', help='Log debug output to stderr')
    parser.add_argument('--quiet', action='store_true', help='Only log errors to stderr')
    parser.add_argument('--silent', action='store_true', help='Do not render task progress')
    parser.add_argument('--log-file', action='store_true', help='Also write a debug log under $ATOM_HOME/log')
    subparsers = parser.add_subparsers(dest='command', required=True)

    install = subparsers.add_parser('install', help='Install a package to $ATOM_HOME/packages')
    install.add_argument('package', nargs='?', default=None, help='name[@version]; omit to install local dependencies')
    install.add_argument('--dev', action='store_true', help='Install into the dev packages directory')
    install.add_argument('--force', action='store_true', help='Reinstall even if the version is present')
    install.set_defaults(func=_install)

    uninstall = subparsers.add_parser('uninstall', help='Remove an installed package')
    uninstall.add_argument('package')
    uninstall.add_argument('--dev', action='store_true')
    uninstall.add_argument('--hard', action='store_true', help='Also remove from the other packages directory')
    uninstall.set_defaults(func=_uninstall)

    link = subparsers.add_parser('link', help='Symlink a local package into $ATOM_HOME/packages')
    link.add_argument('path', nargs='?', default='.')
    link.add_argument('--name', default=None, help='Link name (default: package.json name)')
    link.add_argument('--dev', action='store_true')
    link.set_defaults(func=_link)

    unlink = subparsers.add_parser('unlink', help='Remove package symlinks')
    unlink.add_argument('target', nargs='?', default=None, help='Remove links pointing here (default: cwd)')
    unlink.add_argument('--name', default=None)
    unlink.add_argument('--all', action='store_true')
    unlink.add_argument('--dev', action='store_true')
    unlink.add_argument('--hard', action='store_true')
    unlink.set_defaults(func=_unlink)

    doctor = subparsers.add_parser('doctor', help='Check the local toolchain')
    doctor.set_defaults(func=_doctor)

    publish = subparsers.add_parser('publish', help='Register and publish the package in cwd')
    publish.add_argument('newversion', nargs='?', default=None, help='npm version argument, e.g. patch or 1.2.3')
    publish.set_defaults(func=_publish)

    config = subparsers.add_parser('config', help='Read or persist a default in ~/.apxrc')
    config.add_argument('key', help='Setting name, e.g. target')
    config.add_argument('value', nargs='?', default=None, help='New value (JSON or plain string); omit to print')
    config.set_defaults(func=_config)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the `apx` CLI and return a process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    env = Environment()

    log_file: Optional[Path] = None
    if args.log_file:
        try:
            log_file = Command(env).log_path() / LOG_FILE_NAME
        except ApxError as exc:
            sys.stderr.write(f"{exc}\n")
            return 1
    configure_logging(resolve_log_level(args.verbose, args.quiet), log_file)

    renderer: Optional[Renderer] = NullRenderer() if args.silent else None
    try:
        return int(args.func(args, env, renderer) or 0)
    except ApxError as exc:
        logger.debug("Command failed before running tasks: {}", exc)
        sys.stderr.write(f"{exc}\n")
        return 1
    except KeyboardInterrupt:
        return 130

"""
docprocessor CLI entry point.

Dispatches the ``process`` and ``render`` subcommands.
"""

import argparse
import os
import sys
from typing import Optional

from docprocessor import __version__
from docprocessor.observability import configure_logging

from .commands import cmd_process, cmd_render


def _configure_runtime_logging(args) -> None:
    """Configure the ``docprocessor`` logger from the CLI flag or the environment."""
    log_level = (
        getattr(args, 'log_level', None) or
        os.getenv('DOCPROCESSOR_LOG_LEVEL', 'warn')
    ).lower()
    configure_logging(log_level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Expand processing tags such as @include and @sample in doc comments",
        prog="docprocessor"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Print full tracebacks for errors (or set DOCPROCESSOR_VERBOSE=1)'
    )
    parser.add_argument(
        '--log-level',
        choices=['debug', 'info', 'warn', 'error'],
        default=None,
        help='Set logging level (or set DOCPROCESSOR_LOG_LEVEL)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    process_parser = subparsers.add_parser(
        'process',
        help='Process the doc comments listed in a manifest and write them back'
    )
    process_parser.add_argument('manifest', help='Path to the JSON declaration manifest')
    process_parser.add_argument(
        '--config',
        default=None,
        help='Path to a docprocessor.toml or .docprocessorrc file'
    )
    process_parser.add_argument(
        '--dry-run', action='store_true',
        help='Report what would change without writing any file'
    )
    process_parser.add_argument(
        '--fail-fast', action='store_true',
        help='Stop at the first failing processor'
    )
    process_parser.add_argument(
        '--processors',
        nargs='+',
        default=None,
        metavar='ID',
        help='Processor ids to run in order (overrides the configuration)'
    )
    process_parser.add_argument(
        '--limit',
        type=int,
        default=None,
        help='Maximum number of passes per processor'
    )
    process_parser.add_argument(
        '--out', '-o', default=None,
        help='Write rewritten files to this directory instead of in place'
    )
    process_parser.set_defaults(func=cmd_process)

    render_parser = subparsers.add_parser(
        'render',
        help='Print the content of every doc comment in a file'
    )
    render_parser.add_argument('file', help='Source file to read')
    render_parser.set_defaults(func=cmd_render)

    return parser


def main(argv: Optional[list] = None) -> None:
    """
    Main CLI entrypoint.

    Examples:
        >>> main(['process', 'manifest.json', '--dry-run'])  # doctest: +SKIP
        >>> main(['render', 'src/Foo.kt'])  # doctest: +SKIP
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help()
        sys.exit(1)

    _configure_runtime_logging(args)
    args.func(args)


__all__ = ["main", "build_parser"]

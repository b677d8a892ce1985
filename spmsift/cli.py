#!/usr/bin/env python3
"""
spmsift/cli.py
==============
spmsift CLI

Usage:
    swift package dump-package | spmsift
    swift package show-dependencies | spmsift --format summary
    swift package resolve | spmsift --severity warning --metrics
    spmsift analyze manifest.json --target MyLibrary
    spmsift init-config .
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from . import __version__
from .analyzer import analyze
from .config import SpmsiftConfig
from .errors import ConfigError
from .log import setup_logging
from .models import OutputFormat, Severity, SwiftPackageCommand
from .reporters import get_reporter


NO_INPUT_MESSAGE = (
    "spmsift: No input detected. Pipe Swift Package Manager output to spmsift.\n"
    "Usage: swift package <command> | spmsift"
)


def _read_input(args) -> Optional[bytes]:
    """Input bytes from FILE or stdin; None when stdin is a terminal"""
    if args.file:
        return Path(args.file).read_bytes()

    stdin = args.stdin
    if hasattr(stdin, 'isatty') and stdin.isatty():
        return None
    buffer = getattr(stdin, 'buffer', None)
    if buffer is not None:
        return buffer.read()
    return stdin.read().encode("utf-8")


# =============================================================================
# Commands
# =============================================================================

def cmd_analyze(args):
    """Analyse one piece of swift package output"""
    setup_logging(debug=args.debug, log_file=args.log_file)

    try:
        config = SpmsiftConfig.load(path=Path(args.config) if args.config else None)
    except ConfigError as e:
        logger.error("{}", e)
        return 1

    if config.log_file and not args.log_file:
        setup_logging(debug=args.debug, log_file=config.log_file)

    fmt = OutputFormat(args.format) if args.format else config.format
    severity = Severity(args.severity) if args.severity else config.severity
    command = SwiftPackageCommand(args.command) if args.command else config.command

    try:
        data = _read_input(args)
    except OSError as e:
        logger.error("Cannot read {}: {}", args.file, e)
        return 1

    if data is None:
        print(NO_INPUT_MESSAGE, file=args.stdout)
        return 1
    if not data:
        print('{"error": "No input received"}', file=args.stdout)
        return 1

    result = analyze(
        data,
        command=command,
        target=args.target or config.target,
        min_severity=severity,
        include_metrics=args.metrics or config.metrics,
        include_raw=args.verbose or config.verbose,
    )

    get_reporter(fmt, args.stdout).report(result)

    # Exit code reports tool failures only, not the analysis outcome
    return 0


def cmd_init_config(args):
    """Write a starter .spmsift/config.yaml"""
    path = SpmsiftConfig().save(Path(args.directory))
    print(f"Wrote {path}", file=args.stdout)
    return 0


# =============================================================================
# Main
# =============================================================================

COMMANDS = {
    'analyze': cmd_analyze,
    'init-config': cmd_init_config,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='spmsift',
        description='Context-efficient Swift Package Manager output analysis',
    )
    parser.add_argument('--version', action='version', version=__version__)

    subparsers = parser.add_subparsers(dest='subcommand', help='Commands')

    # analyze
    p_analyze = subparsers.add_parser('analyze', help='Analyse swift package output (default)')
    p_analyze.add_argument('file', nargs='?', help='Input file (default: stdin)')
    p_analyze.add_argument('--format', '-f', choices=[f.value for f in OutputFormat],
                           help='Output format (json, summary, detailed)')
    p_analyze.add_argument('--severity', choices=[s.value for s in Severity],
                           help='Minimum issue severity to include')
    p_analyze.add_argument('--verbose', '-v', action='store_true',
                           help='Include raw output for debugging')
    p_analyze.add_argument('--metrics', action='store_true', help='Enable performance metrics')
    p_analyze.add_argument('--command', '-c', choices=[c.value for c in SwiftPackageCommand],
                           help='Producing command (skips detection)')
    p_analyze.add_argument('--target', '-t', help='Restrict dump-package analysis to one target')
    p_analyze.add_argument('--config', help='Config file (default: .spmsift/config.yaml)')
    p_analyze.add_argument('--log-file', help='Also write debug logs to this file')
    p_analyze.add_argument('--debug', action='store_true', help='Debug logging on stderr')

    # init-config
    p_init = subparsers.add_parser('init-config', help='Write a starter config file')
    p_init.add_argument('directory', nargs='?', default='.', help='Project directory')

    return parser


def main(argv: Optional[List[str]] = None, stdin=None, stdout=None):
    argv = list(sys.argv[1:] if argv is None else argv)

    # "analyze" is implied: `swift package dump-package | spmsift --format summary`
    if not argv or (argv[0] not in COMMANDS and argv[0] not in ('-h', '--help', '--version')):
        argv.insert(0, 'analyze')

    args = build_parser().parse_args(argv)
    args.stdin = stdin or sys.stdin
    args.stdout = stdout or sys.stdout

    return COMMANDS[args.subcommand](args)


if __name__ == '__main__':
    sys.exit(main())

"""Command line interface for sketchpipe.

Usage:
  sketchpipe freq  [-k INT] [-d PATH...] [-s PATH...] [-o PATH] [-p] [-w]
                   [-t] [-T] [-e] [-n] [-F ID...] [-f FILE]
  sketchpipe quant [-k INT] [-d PATH...] [-s PATH...] [-o PATH] [-p]
                   [-h] [-lh ZERO_SUB] [-b INT] [-r DOUBLES...] [-R FILE]
                   [-v DOUBLES...] [-V FILE] [--plot PNG]
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from sketchpipe.exceptions import SketchPipeError
from sketchpipe.logging_config import configure_from_env, enable_console_logging
from sketchpipe.pipeline import BACKENDS, Pipeline, PipelineConfig, get_backend

logger = logging.getLogger(__name__)

PROG = "sketchpipe"


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-help", "--help",
        action="help",
        help="show this help message and exit",
    )
    common.add_argument(
        "-k",
        type=int,
        metavar="INT",
        help="resolution parameter k for building and merging sketches",
    )
    common.add_argument(
        "-d", "--data",
        nargs="+",
        metavar="PATH",
        help="data file(s) to build sketches from, '-' for standard input",
    )
    common.add_argument(
        "-s", "--sketches",
        nargs="+",
        metavar="PATH",
        help="serialized sketch file(s) to load and merge",
    )
    common.add_argument(
        "-o", "--output",
        metavar="PATH",
        help="write the final sketch to PATH",
    )
    common.add_argument(
        "-p", "--print-summary",
        action="store_true",
        help="report a summary of the final sketch",
    )
    common.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="log to standard error at this level",
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Build, merge and query streaming sketches from text input.",
        add_help=False,
    )
    parser.add_argument(
        "-h", "-help", "--help",
        action="help",
        help="show this help message and exit",
    )
    sub = parser.add_subparsers(dest="command", required=True, metavar="SKETCH")
    common = _common_options()

    for backend in BACKENDS:
        backend_parser = sub.add_parser(
            backend.name,
            aliases=list(backend.aliases),
            parents=[common],
            add_help=False,
            help=backend.summary,
            description=f"{backend.summary} (default k = {backend.default_k})",
        )
        backend.add_arguments(backend_parser)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_from_env()
    if args.log_level:
        enable_console_logging(level=args.log_level)

    try:
        backend_type = get_backend(args.command)
        backend = backend_type.from_args(args)
        config = PipelineConfig.from_args(args, backend_type.default_k)
        logger.debug("Running %s with %s", backend_type.name, config)
        Pipeline(backend, config).run()
    except SketchPipeError as e:
        print(f"{PROG} {args.command}: error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

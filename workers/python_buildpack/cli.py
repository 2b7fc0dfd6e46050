"""
CLI - ``python-buildpack compile BUILD_DIR CACHE_DIR`` and ``python-buildpack detect BUILD_DIR``.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from python_buildpack.core.detect import detect
from python_buildpack.io.buildlog import configure_logging
from python_buildpack.io.writer import write_receipt
from python_buildpack.policy.failures import BuildFailed
from python_buildpack.runner import run_compile

logger = logging.getLogger(__name__)


def _cmd_compile(args: argparse.Namespace) -> int:
    configure_logging(verbose=args.verbose)
    try:
        receipt = run_compile(args.build_dir, args.cache_dir)
    except BuildFailed as e:
        logger.warning("Build failed: %s", e.message)
        if args.receipt and e.receipt is not None:
            write_receipt(e.receipt, args.receipt)
        return 1

    if args.receipt:
        write_receipt(receipt, args.receipt)
    logger.debug("receipt states: %s", [s.value for s in receipt.states])
    return 0


def _cmd_detect(args: argparse.Namespace) -> int:
    kind = detect(args.build_dir)
    if kind is None:
        print("no")
        return 1
    print(kind)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python-buildpack",
        description="python_buildpack - compile a Python app into a relocatable virtualenv slug",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    compile_p = sub.add_parser("compile", help="Build the app in BUILD_DIR using CACHE_DIR")
    compile_p.add_argument("build_dir", type=Path, help="Application source tree (modified in place)")
    compile_p.add_argument("cache_dir", type=Path, help="Cache directory kept between builds")
    compile_p.add_argument(
        "--receipt",
        type=Path,
        default=None,
        help="Write the JSON build receipt to this path",
    )
    compile_p.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    compile_p.set_defaults(func=_cmd_compile)

    detect_p = sub.add_parser("detect", help="Print the app kind, exit 1 if not a Python app")
    detect_p.add_argument("build_dir", type=Path)
    detect_p.set_defaults(func=_cmd_detect)

    return parser


def main(argv: List[str] | None = None) -> int:
    """CLI entry point for python_buildpack."""
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

"""tlsprobe — fetch / over TLS and report the connection timeline and certificates."""

import asyncio
import logging
import sys
from argparse import ArgumentParser

from tlsprobe.config import ProbeConfig
from tlsprobe.errors import InvalidConfiguration, ProbeError
from tlsprobe.formatter import format_report
from tlsprobe.pipeline import probe

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="tlsprobe",
        description="Connect to HOST:443 over TLS, fetch / and report the connection timeline.",
    )
    parser.add_argument(
        "host",
        help="Target hostname (no scheme, no path)",
    )
    parser.add_argument(
        "-t", "--tls",
        dest="tls_versions",
        nargs="+",
        action="extend",
        required=True,
        metavar="VERSION",
        help="Acceptable TLS versions: 1 (or 1.0), 1.1, 1.2",
    )
    parser.add_argument(
        "-b", "--with-body",
        action="store_true",
        help="Display the response body",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-stage timeout in seconds (default: wait forever)",
    )
    parser.add_argument(
        "--output",
        choices=["text", "json"],
        default="text",
        help="Report format (default: text)",
    )
    parser.add_argument(
        "--color",
        action="store_true",
        help="Colorize report labels (ANSI)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr (-v stages, -vv debug)",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=LOG_LEVELS[min(args.verbose, len(LOG_LEVELS) - 1)],
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        config = ProbeConfig.from_args(args)
        result = asyncio.run(probe(config))
    except InvalidConfiguration as e:
        print(f"[PROBE] {e.describe()}", file=sys.stderr)
        return 2
    except ProbeError as e:
        print(f"[PROBE] {e.describe()}", file=sys.stderr)
        return 1

    print(format_report(result, with_body=config.with_body, output=config.output, color=config.color))
    return 0


def run():
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
    except BrokenPipeError:
        sys.exit(0)


if __name__ == "__main__":
    run()

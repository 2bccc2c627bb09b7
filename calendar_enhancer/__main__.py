"""Command-line entry for calendar_enhancer.

Runs the streaming proxy server, or rewrites a local ``.ics`` file through the
same pipeline when ``--rewrite`` is given.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

from . import _init_logging, run_server

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the calendar_enhancer CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calendar_enhancer",
        description="Calendar Enhancer - privacy-preserving iCalendar rewriting proxy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m calendar_enhancer                          # Start proxy on default port (8080)
  python -m calendar_enhancer --port 3000              # Start proxy on port 3000
  python -m calendar_enhancer --rewrite feed.ics       # Rewrite a local file to stdout
  python -m calendar_enhancer --rewrite feed.ics -o out.ics
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or CALENDAR_ENHANCER_WEB_PORT)",
    )
    parser.add_argument(
        "--rewrite",
        type=Path,
        metavar="ICS_FILE",
        help="Rewrite a local iCalendar file instead of starting the server",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        metavar="OUT_FILE",
        help="Destination for --rewrite output (default: stdout)",
    )

    return parser


def _rewrite_file(source: Path, output: Optional[Path]) -> int:
    """Rewrite ``source`` through the enhancement pipeline.

    Returns:
        Process exit code
    """
    from .calendar.lite_streaming_pipeline import enhance_ics_bytes

    try:
        data = source.read_bytes()
    except OSError as e:
        logger.error("Cannot read %s: %s", source, e)
        return 1

    enhanced = enhance_ics_bytes(data)

    if output is None:
        sys.stdout.buffer.write(enhanced)
        sys.stdout.buffer.flush()
    else:
        try:
            output.write_bytes(enhanced)
        except OSError as e:
            logger.error("Cannot write %s: %s", output, e)
            return 1
        logger.info("Wrote %d bytes to %s", len(enhanced), output)
    return 0


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the calendar_enhancer CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    if args.rewrite is not None:
        _init_logging("WARNING" if args.output is None else "INFO")
        sys.exit(_rewrite_file(args.rewrite, args.output))

    if args.output is not None:
        parser.error("--output is only valid together with --rewrite")

    run_server(args)
    sys.exit(0)


if __name__ == "__main__":
    main()

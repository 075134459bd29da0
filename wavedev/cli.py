"""
Main CLI for the wavedev tool.

Development session with hot-reload for audio plugin projects.
"""

from __future__ import annotations

import argparse
import sys

from wavedev import __version__
from wavedev.core.utils import log

# Exit code for unexpected helper failures; the session reports it as a crash
EXIT_HELPER_INTERNAL = 70


# =============================================================================
# Argument Parsing
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with all subcommands."""

    parser = argparse.ArgumentParser(
        prog="wavedev",
        description="Hot-reload development session for audio plugins",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  start           Start a development session with hot-reload

Examples:
  wavedev start                     # Session for the project in the current directory
  wavedev start --port 9100         # Serve on another port
  wavedev start --no-cache          # Ignore the sidecar parameter cache
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- start ---
    start_parser = subparsers.add_parser(
        "start",
        help="Start a development session",
        description="Build the plugin, serve its parameters over WebSocket, and rebuild on change.",
    )
    start_parser.add_argument(
        "--project",
        help="Project directory (default: search upward from the current directory)",
    )
    start_parser.add_argument(
        "--port",
        type=int,
        help="WebSocket port (default: 9000)",
    )
    start_parser.add_argument(
        "--timeout",
        type=float,
        help="Parameter extraction timeout in seconds (default: 30)",
    )
    start_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore the sidecar parameter cache at startup",
    )
    start_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    # --- extract-params (internal) ---
    extract_parser = subparsers.add_parser(
        "extract-params",
        description="Print a plugin library's parameters as one JSON line (internal).",
    )
    extract_parser.add_argument(
        "path",
        help="Path to the built plugin library",
    )

    return parser


# =============================================================================
# Command Dispatch
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        log.set_color(False)

    if not args.command:
        parser.print_help()
        return 0

    # The helper owns stdout for its payload; keep the operator log out of it
    if args.command == "extract-params":
        from wavedev.commands.extract_params import cmd_extract_params
        try:
            return cmd_extract_params(args)
        except Exception as e:
            print(f"error: unexpected failure: {e!r}", file=sys.stderr)
            return EXIT_HELPER_INTERNAL

    try:
        if args.command == "start":
            from wavedev.commands.start import cmd_start
            return cmd_start(args)

        else:
            log.error(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 130
    except Exception as e:
        log.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())

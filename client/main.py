"""CLI entry point."""

import os
import sys

from client.constants import RED
from client.parser import ParseError, parse_tokens
from client.repl import dispatch_command, repl_loop
from common.logging_config import setup_logging


def run_once(args: list[str]) -> int:
    """
    Run a single command given on the command line.

    Args:
        args: Command tokens, e.g. ['upload', 'video.mp4']

    Returns:
        Process exit code (0 on success)
    """
    try:
        cmd_obj = parse_tokens(args)
    except ParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    result = dispatch_command(cmd_obj)
    print(result)
    failed = any(line.startswith(("Error", RED)) for line in result.splitlines())
    return 1 if failed else 0


def main() -> None:
    """Entry point for CLI."""
    args = sys.argv[1:]
    debug = '--debug' in args
    if debug:
        args.remove('--debug')

    log_level = 'DEBUG' if debug else os.getenv('LOG_LEVEL', 'WARNING')
    logger = setup_logging('client', log_level=log_level)
    if debug:
        logger.info("Debug logging enabled")

    if args:
        sys.exit(run_once(args))

    logger.info("CLI starting...")
    try:
        repl_loop()
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        logger.info("CLI exiting")


if __name__ == "__main__":
    main()

"""CLI entry point."""

import sys
import os

from common.logging_config import setup_logging
from cli.constants import HELP_TEXT
from cli.parser import ParseError, parse_tokens
from cli.repl import dispatch_command, repl_loop


def main() -> None:
    """
    Entry point for CLI.

    With arguments, runs one command (e.g. `weedclient upload a.txt`);
    without, starts the interactive REPL.
    """
    log_level = 'DEBUG' if '--debug' in sys.argv else os.getenv('LOG_LEVEL', 'INFO')

    logger = setup_logging('cli', log_level=log_level)
    setup_logging('weedclient', log_level=log_level)

    if '--debug' in sys.argv:
        logger.info("Debug logging enabled")
        sys.argv.remove('--debug')

    args = sys.argv[1:]
    if args in (['help'], ['-h'], ['--help']):
        print(HELP_TEXT)
        return

    if args:
        try:
            cmd_obj = parse_tokens(args)
        except ParseError as e:
            print(f"Error: {e}")
            sys.exit(2)
        result = dispatch_command(cmd_obj)
        print(result)
        if any(line.startswith("Error") for line in result.splitlines()):
            sys.exit(1)
        return

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

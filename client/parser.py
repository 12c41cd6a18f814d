"""Command parser for CLI input."""

import shlex

from client.models import AssetsCommand, CommandRequest, StatusCommand, UploadCommand


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object (one of Upload/Status/Assets)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    return parse_tokens(tokens)


def parse_tokens(tokens: list[str]) -> CommandRequest:
    """Parse already-split tokens (e.g. sys.argv[1:]) into a CommandRequest."""
    command_name = tokens[0].lower()

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "status":
        return _parse_status(tokens[1:])
    elif command_name == "assets":
        return _parse_assets(tokens[1:])
    else:
        raise ParseError(f"Unknown command: {tokens[0]}")


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <file>...' command."""
    if not args:
        raise ParseError("upload requires at least one file")

    return UploadCommand(file_list=tuple(args))


def _parse_status(args: list[str]) -> StatusCommand:
    """Parse 'status <file>' command."""
    if len(args) != 1:
        raise ParseError("status requires exactly 1 argument: <file>")

    return StatusCommand(file_path=args[0])


def _parse_assets(args: list[str]) -> AssetsCommand:
    """Parse 'assets' command."""
    if args:
        raise ParseError("assets takes no arguments")

    return AssetsCommand()

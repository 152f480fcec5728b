"""Command parser for CLI input."""

import shlex

from cli.models import (
    ChunkSizeCommand,
    CommandRequest,
    DeleteCommand,
    DownloadCommand,
    LookupCommand,
    ReplaceCommand,
    UploadCommand,
    UrlCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from the REPL or joined argv

    Returns:
        CommandRequest object

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
    """Parse an already split command (e.g. sys.argv[1:])."""
    command_name, args = tokens[0], tokens[1:]

    if command_name == "upload":
        return _parse_upload(args)
    elif command_name == "replace":
        return _parse_replace(args)
    elif command_name == "delete":
        return _parse_delete(args)
    elif command_name == "download":
        return _parse_download(args)
    elif command_name == "lookup":
        return _parse_lookup(args)
    elif command_name == "url":
        return _parse_url(args)
    elif command_name == "chunk-size":
        return _parse_chunk_size(args)
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _take_option_value(args: list[str], index: int, option: str) -> str:
    if index + 1 >= len(args):
        raise ParseError(f"{option} requires a value")
    return args[index + 1]


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <file...> [-c collection] [-t ttl]' command."""
    file_list = []
    collection = None
    ttl = None

    index = 0
    while index < len(args):
        arg = args[index]
        if arg in ("-c", "--collection"):
            collection = _take_option_value(args, index, arg)
            index += 2
        elif arg in ("-t", "--ttl"):
            ttl = _take_option_value(args, index, arg)
            index += 2
        elif arg.startswith("-"):
            raise ParseError(f"Unknown option for upload: {arg}")
        else:
            file_list.append(arg)
            index += 1

    if not file_list:
        raise ParseError("upload requires at least one file")

    return UploadCommand(file_list=tuple(file_list), collection=collection, ttl=ttl)


def _parse_replace(args: list[str]) -> ReplaceCommand:
    """Parse 'replace <fid> <file> [--delete-first]' command."""
    delete_first = "--delete-first" in args
    positional = [arg for arg in args if arg != "--delete-first"]

    if len(positional) != 2:
        raise ParseError("replace requires exactly 2 arguments: <fid> <file> [--delete-first]")

    fid, file_path = positional
    return ReplaceCommand(fid=fid, file_path=file_path, delete_first=delete_first)


def _parse_delete(args: list[str]) -> DeleteCommand:
    """Parse 'delete <fid>' command."""
    if len(args) != 1:
        raise ParseError("delete requires exactly 1 argument: <fid>")

    return DeleteCommand(fid=args[0])


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <fid|url> [directory]' command."""
    if not 1 <= len(args) <= 2:
        raise ParseError("download requires 1 or 2 arguments: <fid|url> [directory]")

    target = args[0]
    directory = args[1] if len(args) > 1 else "."

    return DownloadCommand(target=target, directory=directory)


def _parse_lookup(args: list[str]) -> LookupCommand:
    """Parse 'lookup <fid>' command."""
    if len(args) != 1:
        raise ParseError("lookup requires exactly 1 argument: <fid>")

    return LookupCommand(fid=args[0])


def _parse_url(args: list[str]) -> UrlCommand:
    if len(args) != 1:
        raise ParseError("url requires exactly 1 argument: <fid>")

    return UrlCommand(fid=args[0])


def _parse_chunk_size(args: list[str]) -> ChunkSizeCommand:
    """Parse 'chunk-size [bytes]' command."""
    if len(args) > 1:
        raise ParseError("chunk-size takes at most 1 argument: [bytes]")
    if not args:
        return ChunkSizeCommand()

    try:
        size = int(args[0])
    except ValueError:
        raise ParseError(f"chunk-size must be an integer, got {args[0]!r}")
    if size < 0:
        raise ParseError("chunk-size must be >= 0 (0 disables chunking)")

    return ChunkSizeCommand(size=size)

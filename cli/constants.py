"""CLI constants."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "replace", "delete", "download", "lookup", "url", "chunk-size", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#2E8B57 bold",
        "command": "#0088ff bold",
    }
)

SEA_GREEN = "\033[38;2;46;139;87m"
RESET = "\033[0m"

WELCOME_TITLE = f"{SEA_GREEN}weedclient{RESET} - chunked uploads for fid-addressed storage"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "weed> "

HELP_TEXT = """Available commands:
  upload <file...> [-c collection] [-t ttl]   Upload files (large files are chunked)
  replace <fid> <file> [--delete-first]       Store new content under an existing fid
  delete <fid>                                Delete a fid
  download <fid|url> [directory]              Download to directory (default: current)
  lookup <fid>                                Show the volume server holding a fid
  url <fid>                                   Show the master URL of a fid
  chunk-size [bytes]                          Show or set the chunk threshold (0 disables)
  clear                                       Clear screen and redisplay welcome message
  help                                        Show this help
  exit                                        Exit REPL

Examples:
  upload report.pdf
  upload a.txt b.txt c.txt -c docs -t 7d
  replace 3,01637037d6 report-v2.pdf --delete-first
  download 3,01637037d6 downloads/
  chunk-size 8388608
  delete 3,01637037d6"""

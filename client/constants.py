"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "status", "assets", "clear", "exit", "help"]

FILE_COMMANDS = ("upload", "status")

STYLE = Style.from_dict(
    {
        "prompt": "#2AA198 bold",
        "command": "#0088ff bold",
    }
)

TEAL = "\033[38;2;42;161;152m"
GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"

LOGO = f"""{TEAL}
 ███████╗██╗     ██╗ ██████╗███████╗██╗   ██╗██████╗
 ██╔════╝██║     ██║██╔════╝██╔════╝██║   ██║██╔══██╗
 ███████╗██║     ██║██║     █████╗  ██║   ██║██████╔╝
 ╚════██║██║     ██║██║     ██╔══╝  ██║   ██║██╔═══╝
 ███████║███████╗██║╚██████╗███████╗╚██████╔╝██║
 ╚══════╝╚══════╝╚═╝ ╚═════╝╚══════╝ ╚═════╝ ╚═╝
{RESET}"""

WELCOME_TITLE = "SliceUpload CLI - Resumable Chunked Uploads"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "sliceupload> "

HELP_TEXT = """Available commands:
  upload <file>...    Upload files in chunks, skipping chunks the server already has
  status <file>       Show fingerprint, chunk count and chunks already on the server
  assets              List merged files on the server
  clear               Clear screen and redisplay welcome message
  help                Show this help
  exit                Exit REPL

An interrupted upload resumes where it stopped: run the same upload again.
Examples:
  upload videos/holiday.mp4
  upload "my report.pdf" notes.txt
  status videos/holiday.mp4
  assets"""

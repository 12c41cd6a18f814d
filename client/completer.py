"""Custom completer for the SliceUpload CLI with local file autocompletion."""

import os
from pathlib import Path
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from client.constants import COMMANDS, FILE_COMMANDS


class SliceUploadCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Local path completion for the arguments of 'upload' and 'status'
    """

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        if tokens[0].lower() not in FILE_COMMANDS:
            return

        current_word = "" if is_typing_new_token else tokens[-1]
        yield from self._complete_paths(current_word)

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_paths(self, partial: str) -> Iterable[Completion]:
        """
        Complete local paths relative to the working directory.

        Directories are offered with a trailing separator so completion can
        continue into them; hidden entries only when the partial name starts with '.'.
        """
        directory, _, prefix = partial.rpartition(os.sep)
        base = Path(directory) if directory else Path.cwd()
        if directory == "" and partial.startswith(os.sep):
            base = Path(os.sep)

        try:
            entries = sorted(base.iterdir(), key=lambda p: p.name)
        except OSError:
            return

        for entry in entries:
            if not entry.name.startswith(prefix):
                continue
            if entry.name.startswith(".") and not prefix.startswith("."):
                continue
            candidate = f"{directory}{os.sep}{entry.name}" if directory or partial.startswith(os.sep) else entry.name
            if entry.is_dir():
                candidate += os.sep
            yield Completion(candidate, start_position=-len(partial))

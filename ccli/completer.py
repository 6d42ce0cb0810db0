"""Command autocompletion for the ccli REPL.

Completes command names (with their descriptions as display meta) for the
first word typed; the counter commands take no arguments.
"""

from prompt_toolkit.completion import Completer, Completion


class CommandCompleter(Completer):
    """Completer for REPL command names."""

    def __init__(self, commands: dict[str, str]):
        """commands maps command name -> one-line description."""
        self.commands = commands

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor.lstrip()

        # only the command word is completable
        if " " in text:
            return

        for name in sorted(self.commands):
            if name.startswith(text.lower()):
                yield Completion(
                    name,
                    start_position=-len(text),
                    display_meta=self.commands[name],
                )

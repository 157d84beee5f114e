"""
System clipboard adapter.

Copies text by piping it into the platform's clipboard command (pbcopy,
wl-copy, xclip, xsel or clip). When none of them is available, for example
over SSH, the text is sent to the terminal as an OSC 52 escape sequence,
which most modern terminal emulators turn into a clipboard write.
"""

import base64
import os
import shutil
import subprocess
import sys
from typing import Callable, TextIO

from core.exceptions import ClipboardError

# Commands tried in order. Each is only attempted if its executable exists.
CLIPBOARD_COMMANDS: list[list[str]] = [
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
    ["clip"],
]


class ClipboardClient:
    """
    Client for writing text to the system clipboard.

    Attributes:
        commands: Candidate commands, tried in order.
        stream: Terminal stream used for the OSC 52 fallback.
    """

    def __init__(
        self,
        commands: list[list[str]] | None = None,
        stream: TextIO | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ):
        self.commands = commands if commands is not None else CLIPBOARD_COMMANDS
        self.stream = stream
        self._which = which

    def available_commands(self) -> list[list[str]]:
        """Return the candidate commands whose executable is on PATH."""
        return [cmd for cmd in self.commands if self._which(cmd[0])]

    def copy(self, text: str) -> str:
        """
        Copy text to the clipboard.

        Args:
            text: The text to copy.

        Returns:
            The mechanism that took the text: a command name or "osc52".

        Raises:
            ClipboardError: If no command succeeded and the OSC 52 fallback
                could not be written.
        """
        for cmd in self.available_commands():
            try:
                subprocess.run(
                    cmd,
                    input=text,
                    text=True,
                    encoding="utf-8",
                    check=True,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    timeout=10,
                )
                return cmd[0]
            except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError):
                continue

        return self.copy_osc52(text)

    def copy_osc52(self, text: str) -> str:
        """
        Write text to the clipboard through the terminal's OSC 52 support.

        Raises:
            ClipboardError: If the stream is not a terminal or cannot be written.
        """
        stream = self.stream or sys.stderr
        if not stream.isatty() and not os.environ.get("CTXPACK_FORCE_OSC52"):
            raise ClipboardError(
                "No clipboard command found and the output is not a terminal"
            )
        payload = base64.b64encode(text.encode("utf-8")).decode("ascii")
        try:
            stream.write(osc52_sequence(payload))
            stream.flush()
        except OSError as e:
            raise ClipboardError(f"Failed to write OSC 52 sequence: {e}") from e
        return "osc52"


def osc52_sequence(payload: str) -> str:
    """
    Wrap a base64 payload in an OSC 52 "set clipboard" sequence.

    Inside tmux the sequence is wrapped in a DCS passthrough so it reaches the
    outer terminal.
    """
    seq = f"\x1b]52;c;{payload}\x07"
    if os.environ.get("TMUX"):
        return f"\x1bPtmux;\x1b{seq}\x1b\\"
    return seq

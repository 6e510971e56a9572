"""Terminal output for Kiln.

Every user-facing line goes through a single ``Console`` so that output from
parallel workers never interleaves and never tears an active progress bar.

Design:
    - tqdm.write() is the only sink (it redraws any live progress bar)
    - A lock makes a multi-line block from one worker atomic
    - ANSI colors match the CLI error formatter
"""

import threading
from typing import Any, ContextManager, Iterable, Optional

from tqdm import tqdm


class Color:
    """ANSI color codes."""

    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    BLUE = "\033[1;34m"
    PURPLE = "\033[1;35m"
    CYAN = "\033[1;36m"
    RESET = "\033[0m"


class Console:
    """Serialized, optionally colored line writer."""

    def __init__(self, use_color: bool = True):
        self.use_color = use_color
        self._lock = threading.RLock()

    def _format(self, message: str, color: Optional[str]) -> str:
        if color and self.use_color:
            return f"{color}{message}{Color.RESET}"
        return message

    def print(self, message: str = "", color: Optional[str] = None) -> None:
        with self._lock:
            tqdm.write(self._format(message, color))

    def print_block(self, lines: Iterable[str], color: Optional[str] = None) -> None:
        """Print several lines without letting another worker cut in."""
        with self._lock:
            for line in lines:
                tqdm.write(self._format(line, color))

    def header(self, message: str) -> None:
        self.print(message, Color.BLUE)

    def step(self, message: str) -> None:
        self.print()
        self.print(message)

    def success(self, message: str) -> None:
        self.print(message, Color.GREEN)

    def warning(self, message: str) -> None:
        self.print(message, Color.YELLOW)

    def hold(self) -> ContextManager[Any]:
        """Lock to hold while printing several calls as one block.

        Example:
            with console.hold():
                console.print(stdout)
                console.print_block(stderr_lines, Color.RED)
        """
        return self._lock

import contextlib
import logging
import os
import subprocess
import sys
import tkinter as tk
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class DebounceTimer:
    def __init__(self, widget, delay_ms: int, callback: Callable[..., Any]):
        self.widget = widget
        self.delay_ms = delay_ms
        self.callback = callback
        self._after_id: str | None = None

    @property
    def pending(self) -> bool:
        return self._after_id is not None

    def call(self, *args, **kwargs):
        self.cancel()

        def fire():
            self._after_id = None
            self.callback(*args, **kwargs)

        with contextlib.suppress(tk.TclError):
            self._after_id = self.widget.after(self.delay_ms, fire)

    def cancel(self):
        if self._after_id:
            with contextlib.suppress(tk.TclError):
                self.widget.after_cancel(self._after_id)
            self._after_id = None


def file_browser_command(path: str, platform: str = sys.platform) -> list[str]:
    """The command that reveals a file in the platform's file browser."""
    path = os.path.realpath(path)

    if platform.startswith("win"):
        return ["explorer", f"/select,{path}"]
    elif platform == "darwin":
        return ["open", "-R", path]
    else:
        # most linux file managers cannot select a file, open its directory instead
        return ["xdg-open", os.path.dirname(path)]


def open_in_file_browser(path: str):
    command = file_browser_command(path)
    try:
        subprocess.Popen(command)
    except OSError as e:
        logger.error(f"Could not open {path} in the file browser: {e}")

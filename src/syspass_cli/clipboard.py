#!/usr/bin/env python3
"""Clipboard Manager - Copy secrets to the system clipboard and clear them later.

State machine per copied secret: IDLE -> COPIED -> CLEARED | SUPERSEDED.
Only one clear may be pending at a time; a new copy cancels the pending one.
"""

import enum
import logging
import os
import subprocess
import sys
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

from .config import Config
from .errors import ClipboardError

logger = logging.getLogger(__name__)

CLIPBOARD_TIMEOUT = 5  # seconds allowed for the clipboard tool


class ClipboardState(enum.Enum):
    IDLE = "idle"
    COPIED = "copied"
    CLEARED = "cleared"
    SUPERSEDED = "superseded"


class SystemClipboard:
    """Clipboard access through the platform's command-line tool."""

    def _command(self) -> List[str]:
        """Detect environment and choose tool."""
        if sys.platform == "darwin":
            return ["pbcopy"]

        if os.path.exists("/proc/version"):
            with open("/proc/version") as f:
                version = f.read().lower()
            if "microsoft" in version or "wsl" in version:
                return ["clip.exe"]
            if os.environ.get("WAYLAND_DISPLAY"):
                return ["wl-copy"]
            if os.environ.get("DISPLAY"):
                return ["xclip", "-selection", "clipboard"]

        raise ClipboardError("No clipboard tool available")

    def _run(self, cmd: List[str], text: str) -> None:
        try:
            # xclip keeps running to serve the selection: do not wait on its output
            proc = subprocess.run(
                cmd,
                input=text.encode("utf-8"),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=CLIPBOARD_TIMEOUT
            )
        except FileNotFoundError:
            raise ClipboardError(f"Clipboard tool not found: {cmd[0]}")
        except subprocess.TimeoutExpired:
            raise ClipboardError(f"Clipboard tool timed out: {cmd[0]}")

        if proc.returncode != 0:
            raise ClipboardError(f"Clipboard tool failed: {cmd[0]} (exit {proc.returncode})")

    def copy(self, text: str) -> None:
        self._run(self._command(), text)

    def clear(self) -> None:
        cmd = self._command()
        if cmd[0] == "wl-copy":
            self._run(["wl-copy", "--clear"], "")
        else:
            self._run(cmd, "")


class ScheduledClear:
    """Cancelable, awaitable clear of the clipboard after a delay."""

    def __init__(self, delay: float, action: Callable[[], None]):
        self.delay = delay
        self.action = action
        self.deadline = time.monotonic() + delay
        self.fired = False
        self._cancelled = threading.Event()
        # Daemon thread: an interrupted process may leave the secret behind
        self._thread = threading.Thread(target=self._run, name="clipboard-clear", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        if self._cancelled.wait(self.delay):
            return
        try:
            self.action()
        except ClipboardError as e:
            logger.warning("Could not clear clipboard: %s", e)
        finally:
            self.fired = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() and not self.fired

    @property
    def pending(self) -> bool:
        return self._thread.is_alive() and not self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()
        self._thread.join()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the clear ran or was cancelled.

        Returns:
            True if the task finished within the timeout

        """
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())


class ClipboardManager:
    """Owns the clipboard for one command invocation."""

    def __init__(self, config: Config, backend=None, echo: Callable[[str], None] = print):
        """Initialize the manager.

        Args:
            config: Resolved configuration (password_timeout, no_clipboard,
                clear_in_background)
            backend: Object with copy(text) and clear(), default SystemClipboard
            echo: Where secrets go when they can't be copied

        """
        self.config = config
        self.backend = backend or SystemClipboard()
        self.echo = echo
        self.state = ClipboardState.IDLE
        self.pending: Optional[ScheduledClear] = None
        self.lock = threading.Lock()

    def copy(self, secret: str, timeout: Optional[int] = None) -> bool:
        """Place a secret on the clipboard and schedule its removal.

        Args:
            secret: Text to copy
            timeout: Seconds before clearing, default config.password_timeout;
                0 disables the clear

        Returns:
            True if the secret was copied, False if it was printed instead

        """
        if timeout is None:
            timeout = self.config.password_timeout

        if self.config.no_clipboard:
            self.echo(secret)
            return False

        superseded = self._supersede()

        try:
            self.backend.copy(secret)
        except ClipboardError as e:
            logger.warning("%s - printing to stdout", e)
            if superseded:
                # The previous secret lost its scheduled clear
                self._try_clear()
            self.echo(secret)
            return False

        with self.lock:
            self.state = ClipboardState.COPIED
            if timeout > 0:
                self.pending = ScheduledClear(timeout, self._clear)
                logger.info("Clipboard will be cleared in %d seconds", timeout)

        return True

    def _supersede(self) -> bool:
        """Cancel the clear pending for a previous secret.

        Returns:
            True if a pending clear was cancelled

        """
        with self.lock:
            previous = self.pending
            self.pending = None
        cancelled = previous is not None and previous.pending
        if cancelled:
            previous.cancel()
            logger.debug("Pending clipboard clear superseded")
        with self.lock:
            if self.state == ClipboardState.COPIED:
                self.state = ClipboardState.SUPERSEDED
        return cancelled

    def _clear(self) -> None:
        self.backend.clear()
        with self.lock:
            self.state = ClipboardState.CLEARED
        logger.info("Clipboard cleared")

    def _try_clear(self) -> None:
        try:
            self._clear()
        except ClipboardError as e:
            logger.warning("Could not clear clipboard: %s", e)

    def clear_now(self) -> None:
        """Cancel any pending clear and clear immediately."""
        self._supersede()
        self._clear()

    def finish(self) -> None:
        """Settle the pending clear before the process exits.

        Blocks until the clear fired, unless clear_in_background is set, in
        which case the remaining delay is handed to a detached process.
        """
        with self.lock:
            pending = self.pending
        if pending is None or not pending.pending:
            return

        if self.config.clear_in_background:
            remaining = pending.remaining()
            pending.cancel()
            spawn_background_clear(remaining, self.config.config_path)
            return

        logger.info("Waiting %.0f seconds to clear the clipboard", pending.remaining())
        pending.wait()


def spawn_background_clear(delay: float, config_path: Optional[Path] = None) -> None:
    """Start a detached `syspass search --clear` that outlives this process."""
    cmd = [sys.executable, "-m", "syspass_cli"]
    if config_path is not None:
        cmd += ["--config", str(config_path)]
    cmd += ["search", "--clear", "--clear-after", str(int(round(delay)))]
    try:
        subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True
        )
    except OSError as e:
        logger.warning("Could not start background clipboard clear: %s", e)

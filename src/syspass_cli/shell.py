#!/usr/bin/env python3
"""Shell Launcher - Open an ssh session for accounts whose URL is ssh://."""

import logging
import subprocess
from typing import Callable, List, Optional
from urllib.parse import urlsplit

from .config import Config
from .errors import ShellLaunchError
from .models import Account

logger = logging.getLogger(__name__)

SSH_COMMAND = "ssh"
SSH_ERROR_STATUS = 255


def ssh_command(account: Account) -> Optional[List[str]]:
    """Build the ssh command line for an account, None if not an ssh target."""
    if not account.url:
        return None

    try:
        parsed = urlsplit(account.url)
        port = parsed.port
    except ValueError:
        return None

    if parsed.scheme.lower() != "ssh" or not parsed.hostname:
        return None

    login = parsed.username or account.login
    target = f"{login}@{parsed.hostname}" if login else parsed.hostname

    cmd = [SSH_COMMAND]
    if port:
        cmd += ["-p", str(port)]
    cmd.append(target)
    return cmd


class ShellLauncher:
    """Hands the terminal over to ssh for network accounts."""

    def __init__(self, config: Config, no_shell: bool = False,
                 runner: Callable[[List[str]], int] = subprocess.call):
        self.disabled = config.no_shell or no_shell
        self.runner = runner

    def maybe_launch(self, account: Account) -> bool:
        """Open an interactive ssh session if the account points to one.

        The session shares this process's terminal and is waited for.
        Launch failures are logged as warnings.

        Returns:
            True if a session was started

        """
        if self.disabled:
            return False

        cmd = ssh_command(account)
        if cmd is None:
            return False

        try:
            self.launch(cmd)
        except ShellLaunchError as e:
            logger.warning("%s", e)
            return False

        return True

    def launch(self, cmd: List[str]) -> None:
        logger.info("Opening shell: %s", " ".join(cmd))
        try:
            status = self.runner(cmd)
        except FileNotFoundError:
            raise ShellLaunchError(f"Could not start ssh: {cmd[0]} not found")
        except OSError as e:
            raise ShellLaunchError(f"Could not start ssh: {e}")

        # ssh reports its own failures (refused, unknown host) with 255
        if status == SSH_ERROR_STATUS:
            raise ShellLaunchError(f"ssh could not connect to {cmd[-1]}")

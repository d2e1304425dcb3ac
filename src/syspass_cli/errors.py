#!/usr/bin/env python3
"""Error taxonomy shared by the transport, the API adapters and the CLI.

Every error carries the exit code the CLI terminates with, so scripts can
tell configuration, API, transport and input problems apart.
"""

from typing import Optional

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_API = 3
EXIT_TRANSPORT = 4
EXIT_VALIDATION = 5
EXIT_INTERRUPTED = 130


class SyspassError(Exception):
    """Base class for all syspass-cli errors."""

    exit_code = EXIT_FAILURE


class ConfigError(SyspassError):
    """Missing, unreadable or malformed configuration."""

    exit_code = EXIT_CONFIG


class TransportError(SyspassError):
    """The request never produced a usable HTTP response."""

    exit_code = EXIT_TRANSPORT

    CONNECTION = "connection"
    TLS = "tls"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"

    def __init__(self, reason: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class ApiError(SyspassError):
    """The server answered with a JSON-RPC error or an unusable payload."""

    exit_code = EXIT_API

    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_SUPPORTED = "NOT_SUPPORTED"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    SERVER_ERROR = "SERVER_ERROR"

    def __init__(self, message: str, code: str = SERVER_ERROR):
        super().__init__(message)
        self.code = code


class ValidationError(SyspassError):
    """Caller supplied data rejected before any request was sent."""

    exit_code = EXIT_VALIDATION


class ClipboardError(SyspassError):
    """Clipboard backend missing or failing. Never fatal."""


class ShellLaunchError(SyspassError):
    """The ssh hand-off could not be started. Never fatal."""

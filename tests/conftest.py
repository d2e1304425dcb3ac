"""Pytest fixtures and utilities for syspass-cli tests."""

import json
import tempfile
from pathlib import Path

import httpx
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from syspass_cli.api import get_adapter
from syspass_cli.config import Config
from syspass_cli.errors import ClipboardError
from syspass_cli.transport import Transport


class FakeServer:
    """In-process JSON-RPC endpoint answering by method name."""

    def __init__(self):
        self.results = {}
        self.errors = {}
        self.requests = []
        self.headers = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        self.headers.append(request.headers)

        method = body["method"]
        if method in self.errors:
            payload = {"jsonrpc": "2.0", "id": body["id"], "error": self.errors[method]}
        else:
            payload = {"jsonrpc": "2.0", "id": body["id"], "result": self.results.get(method)}
        return httpx.Response(200, json=payload)

    def transport(self, config: Config) -> Transport:
        client = httpx.Client(transport=httpx.MockTransport(self.handler))
        return Transport(config, client=client)

    @property
    def methods(self):
        return [request["method"] for request in self.requests]

    def last_params(self, method):
        for request in reversed(self.requests):
            if request["method"] == method:
                return request["params"]
        raise AssertionError(f"{method} was never called")


class FakeClipboard:
    """Clipboard backend recording copies and clears."""

    def __init__(self, fail=False):
        self.fail = fail
        self.contents = None
        self.copies = []
        self.clears = 0

    def copy(self, text):
        if self.fail:
            raise ClipboardError("No clipboard tool available")
        self.copies.append(text)
        self.contents = text

    def clear(self):
        if self.fail:
            raise ClipboardError("No clipboard tool available")
        self.clears += 1
        self.contents = ""


class FakeRunner:
    """Stands in for subprocess.call when launching ssh."""

    def __init__(self, status=0, error=None):
        self.status = status
        self.error = error
        self.commands = []

    def __call__(self, cmd):
        self.commands.append(cmd)
        if self.error is not None:
            raise self.error
        return self.status


@pytest.fixture
def temp_dir():
    """Create a temporary directory for config and usage files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_config(temp_dir):
    """Factory for Config objects with test defaults."""
    def _make(**overrides):
        values = {
            "host": "https://vault.example.com/api.php",
            "token": "test_token",
            "password": "test_api_password",
            "password_timeout": 10,
            "usage_path": temp_dir / "usage.json",
        }
        values.update(overrides)
        return Config(**values)
    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def make_adapter(server, make_config):
    """Factory for adapters talking to the fake server."""
    def _make(api_version="SyspassV3", **overrides):
        config = make_config(api_version=api_version, **overrides)
        return get_adapter(config, server.transport(config))
    return _make


@pytest.fixture
def clipboard_backend():
    return FakeClipboard()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def config_file(temp_dir):
    """Write a config file and return its path."""
    def _write(data):
        path = temp_dir / "config.json"
        path.write_text(json.dumps(data))
        return path
    return _write

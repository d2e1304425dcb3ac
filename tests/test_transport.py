"""Tests for the HTTP transport."""

import json

import httpx
import pytest

from syspass_cli.errors import TransportError
from syspass_cli.protocol import Request
from syspass_cli.transport import Transport


def make_transport(config, handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return Transport(config, client=client)


class TestSend:
    """Tests for Transport.send."""

    def test_posts_envelope_with_bearer_token(self, config):
        """Test that the request is a JSON POST with the auth header."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": 1, "result": {}})

        transport = make_transport(config, handler)
        body = transport.send(Request(method="getCategories", id=1, params={"authToken": "t"}))

        assert json.loads(body) == {"id": 1, "result": {}}
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == config.host
        assert request.headers["Authorization"] == "Bearer test_token"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content)["method"] == "getCategories"

    def test_error_payload_returned_as_is(self, config):
        """Test that JSON-RPC errors are not a transport concern."""
        def handler(request):
            return httpx.Response(200, json={"id": 1, "error": {"message": "bad"}})

        body = make_transport(config, handler).send(Request(method="x", id=1))

        assert json.loads(body)["error"]["message"] == "bad"

    def test_http_status(self, config):
        """Test that a non-2xx status raises with the status code."""
        def handler(request):
            return httpx.Response(500, text="oops")

        with pytest.raises(TransportError) as exc_info:
            make_transport(config, handler).send(Request(method="x", id=1))

        assert exc_info.value.reason == TransportError.HTTP_STATUS
        assert exc_info.value.status_code == 500
        assert "500" in str(exc_info.value)

    def test_connection_error(self, config):
        """Test that a refused connection is a CONNECTION failure."""
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(TransportError) as exc_info:
            make_transport(config, handler).send(Request(method="x", id=1))

        assert exc_info.value.reason == TransportError.CONNECTION

    def test_tls_error(self, config):
        """Test that certificate failures are reported as TLS."""
        def handler(request):
            raise httpx.ConnectError("[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed",
                                     request=request)

        with pytest.raises(TransportError) as exc_info:
            make_transport(config, handler).send(Request(method="x", id=1))

        assert exc_info.value.reason == TransportError.TLS

    def test_timeout(self, config):
        """Test that a timeout is reported as TIMEOUT."""
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportError) as exc_info:
            make_transport(config, handler).send(Request(method="x", id=1))

        assert exc_info.value.reason == TransportError.TIMEOUT

    def test_secrets_not_logged(self, config, caplog):
        """Test that debug logs mask the auth parameters."""
        def handler(request):
            return httpx.Response(200, json={"id": 1, "result": {}})

        with caplog.at_level("DEBUG", logger="syspass_cli.transport"):
            make_transport(config, handler).send(
                Request(method="x", id=1, params={"authToken": "sekrit", "tokenPass": "hunter2"})
            )

        assert "sekrit" not in caplog.text
        assert "hunter2" not in caplog.text


class TestLifecycle:
    """Tests for client ownership."""

    def test_context_manager_closes_client(self, config):
        """Test that leaving the context closes the HTTP client."""
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        with Transport(config, client=client):
            pass

        assert client.is_closed

    def test_verify_host_passed_to_client(self, make_config):
        """Test that verifyHost=false disables certificate checks."""
        transport = Transport(make_config(verify_host=False))
        try:
            assert transport.client is not None
        finally:
            transport.close()

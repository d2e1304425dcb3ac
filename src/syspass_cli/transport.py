#!/usr/bin/env python3
"""HTTP Transport - Authenticated JSON-RPC POSTs to the vault server.

One blocking request per call, bounded by a timeout and never retried.
"""

import logging
import ssl
from typing import Optional

import httpx

from .config import Config
from .errors import TransportError
from .protocol import Request, mask_params, serialize_request

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
TLS_HINTS = ("certificate", "ssl", "tls", "handshake")


class Transport:
    """Sends envelopes to the configured endpoint."""

    def __init__(self, config: Config, client: Optional[httpx.Client] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        """Initialize the transport.

        Args:
            config: Resolved configuration (host, token, verify_host)
            client: Preconfigured httpx client, mainly for tests
            timeout: Request timeout in seconds

        """
        self.url = config.host
        self.client = client or httpx.Client(verify=config.verify_host, timeout=timeout)
        self.headers = {
            "Authorization": f"Bearer {config.token}",
            "Content-Type": "application/json",
        }
        if not config.verify_host:
            logger.info("TLS certificate verification disabled for %s", self.url)

    def send(self, request: Request) -> bytes:
        """Send one request and return the raw response body.

        JSON-RPC error payloads are returned as-is; only failures to obtain
        a 2xx response raise.

        Raises:
            TransportError: On connection, TLS, timeout or HTTP status failure

        """
        logger.debug("Sending %s (id %s) to %s: %s", request.method, request.id,
                     self.url, mask_params(request.params))

        try:
            response = self.client.post(
                self.url,
                content=serialize_request(request),
                headers=self.headers
            )
        except httpx.TimeoutException as e:
            raise TransportError(TransportError.TIMEOUT, f"Request to {self.url} timed out: {e}")
        except httpx.TransportError as e:
            if _is_tls_failure(e):
                raise TransportError(TransportError.TLS, f"TLS failure talking to {self.url}: {e}")
            raise TransportError(TransportError.CONNECTION, f"Could not connect to {self.url}: {e}")

        if not response.is_success:
            raise TransportError(
                TransportError.HTTP_STATUS,
                f"Server responded with code {response.status_code}",
                status_code=response.status_code
            )

        logger.debug("Received %d bytes (HTTP %d)", len(response.content), response.status_code)
        return response.content

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def _is_tls_failure(error: Exception) -> bool:
    """Check whether a transport error was caused by TLS."""
    seen = set()
    cause = error
    while cause is not None and id(cause) not in seen:
        if isinstance(cause, ssl.SSLError):
            return True
        seen.add(id(cause))
        cause = cause.__cause__ or cause.__context__
    text = str(error).lower()
    return any(hint in text for hint in TLS_HINTS)

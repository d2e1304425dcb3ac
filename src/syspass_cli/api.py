#!/usr/bin/env python3
"""Vault API - Capability set shared by every sysPass API generation.

Each concrete adapter builds its own method names and parameters and
parses its own response shapes into the models in models.py. Nothing
outside the adapters knows which generation is in use.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from .config import Config, get_password
from .errors import ApiError, ConfigError
from .models import Account, AccountSpec, Category, CategorySpec, Client, ClientSpec
from .protocol import Request, error_from_response, parse_response
from .transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "SyspassV3"


class VaultAdapter(ABC):
    """Base class for sysPass API adapters."""

    version = ""

    def __init__(self, config: Config, transport: Optional[Transport] = None,
                 password_prompt: Callable[[str], str] = get_password):
        self.config = config
        self.transport = transport or Transport(config)
        self.password_prompt = password_prompt
        self.request_number = 1
        self._api_password: Optional[str] = None

    # ------------------------------------------------------------------
    # Request machinery

    def api_password(self) -> str:
        """Password for calls that decrypt or write, asked at most once."""
        if self.config.password:
            return self.config.password
        if self._api_password is None:
            self._api_password = self.password_prompt("API password: ")
        return self._api_password

    def build_params(self, args: Optional[Dict[str, Any]], needs_password: bool) -> Dict[str, Any]:
        """Merge auth parameters with call arguments, dropping empty values."""
        params: Dict[str, Any] = {"authToken": self.config.token}
        if needs_password:
            params["tokenPass"] = self.api_password()

        for key, value in (args or {}).items():
            if value is None or value == "":
                continue
            params[key] = str(value)

        return params

    def call(self, method: str, args: Optional[Dict[str, Any]] = None,
             needs_password: bool = False) -> Any:
        """Send one request and return its result payload.

        Raises:
            ApiError: If the server reports an error or the payload is unusable
            TransportError: If no response could be obtained

        """
        request = Request(
            method=method,
            id=self.request_number,
            params=self.build_params(args, needs_password)
        )
        self.request_number += 1

        raw = self.transport.send(request)
        response = parse_response(raw, request.id)
        logger.debug("Response to %s (id %s): error=%s", method, response.id, response.error)

        if response.error is not None:
            raise error_from_response(response)
        if response.result is None:
            raise ApiError(f"Empty result for {method}", ApiError.INVALID_RESPONSE)

        return response.result

    def not_supported(self, what: str):
        raise ApiError(f"{self.version} does not support {what}", ApiError.NOT_SUPPORTED)

    def close(self) -> None:
        self.transport.close()

    # ------------------------------------------------------------------
    # Accounts

    @abstractmethod
    def search(self, query: str, include_password: bool = False,
               category_id: Optional[int] = None) -> List[Account]:
        """Search accounts by text, in server order."""

    @abstractmethod
    def fetch_password(self, account_id: int) -> str:
        """Fetch an account's decrypted password."""

    @abstractmethod
    def view_account(self, account_id: int) -> Account:
        """Fetch a single account by id."""

    @abstractmethod
    def create_account(self, spec: AccountSpec) -> int:
        """Create an account and return its id."""

    @abstractmethod
    def update_account(self, account_id: int, spec: AccountSpec) -> None:
        """Replace an account's data."""

    @abstractmethod
    def change_password(self, account_id: int, password: str,
                        expire_date: Optional[int] = None) -> None:
        """Replace an account's password."""

    @abstractmethod
    def delete_account(self, account_id: int) -> bool:
        """Delete an account."""

    # ------------------------------------------------------------------
    # Categories

    @abstractmethod
    def list_categories(self) -> List[Category]:
        """All categories, sorted by id."""

    @abstractmethod
    def get_category(self, category_id: int) -> Category:
        """Fetch a single category."""

    @abstractmethod
    def create_category(self, spec: CategorySpec) -> int:
        """Create a category and return its id."""

    @abstractmethod
    def update_category(self, category_id: int, spec: CategorySpec) -> None:
        """Replace a category's data."""

    @abstractmethod
    def delete_category(self, category_id: int) -> bool:
        """Delete a category."""

    # ------------------------------------------------------------------
    # Clients

    @abstractmethod
    def list_clients(self) -> List[Client]:
        """All clients, sorted by id."""

    @abstractmethod
    def get_client(self, client_id: int) -> Client:
        """Fetch a single client."""

    @abstractmethod
    def create_client(self, spec: ClientSpec) -> int:
        """Create a client and return its id."""

    @abstractmethod
    def update_client(self, client_id: int, spec: ClientSpec) -> None:
        """Replace a client's data."""

    @abstractmethod
    def delete_client(self, client_id: int) -> bool:
        """Delete a client."""

    # ------------------------------------------------------------------

    def fill_passwords(self, accounts: List[Account]) -> List[Account]:
        """Fetch and attach the password of every account."""
        for account in accounts:
            account.password = self.fetch_password(account.id)
        return accounts


def get_adapter(config: Config, transport: Optional[Transport] = None, **kwargs) -> VaultAdapter:
    """Instantiate the adapter for the configured API version.

    Raises:
        ConfigError: If the configured version is not supported

    """
    from .api_v2 import SyspassV2
    from .api_v3 import SyspassV3

    adapters = {
        "SyspassV2": SyspassV2,
        "SyspassV3": SyspassV3,
    }

    version = config.api_version or DEFAULT_API_VERSION
    adapter_class = adapters.get(version)
    if adapter_class is None:
        raise ConfigError(f"No such API is supported ({version})")

    logger.debug("Using %s API adapter", version)
    return adapter_class(config, transport, **kwargs)

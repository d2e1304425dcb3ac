#!/usr/bin/env python3
"""sysPass 2.x API adapter.

https://syspass-doc.readthedocs.io/en/2.1/application/api.html

The 2.x API sends every value as a string, prefixes field names with the
table name, lists categories and customers as objects keyed by id and
sends unset optional fields as null or "". All of that is absorbed here.
"""

import logging
from typing import Any, Dict, List, Optional

from .api import VaultAdapter
from .errors import ApiError
from .models import Account, AccountSpec, Category, CategorySpec, Client, ClientSpec

logger = logging.getLogger(__name__)


def lenient_str(data: Dict[str, Any], key: str) -> Optional[str]:
    """Missing, null and blank values all read as None."""
    value = data.get(key)
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


def lenient_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = lenient_str(data, key)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _account(data: Dict[str, Any]) -> Optional[Account]:
    account_id = lenient_int(data, "account_id")
    if account_id is None:
        logger.warning("Ignoring account record without id: %s", lenient_str(data, "account_name"))
        return None

    return Account(
        id=account_id,
        name=lenient_str(data, "account_name") or "",
        login=lenient_str(data, "account_login") or "",
        url=lenient_str(data, "account_url"),
        notes=lenient_str(data, "account_notes"),
        category_id=lenient_int(data, "account_categoryId"),
        client_id=lenient_int(data, "account_customerId"),
        category_name=lenient_str(data, "category_name"),
        client_name=lenient_str(data, "customer_name"),
    )


def _category(data: Dict[str, Any]) -> Optional[Category]:
    category_id = lenient_int(data, "category_id")
    if category_id is None:
        return None
    return Category(
        id=category_id,
        name=lenient_str(data, "category_name") or "",
        description=lenient_str(data, "category_description"),
    )


def _client(data: Dict[str, Any]) -> Optional[Client]:
    client_id = lenient_int(data, "customer_id")
    if client_id is None:
        return None
    return Client(
        id=client_id,
        name=lenient_str(data, "customer_name") or "",
        description=lenient_str(data, "customer_description"),
    )


def keyed_records(result: Any) -> List[Dict[str, Any]]:
    """Records of an object keyed by numeric id; other keys are ignored."""
    if isinstance(result, list):
        return [row for row in result if isinstance(row, dict)]
    if not isinstance(result, dict):
        return []
    return [
        value for key, value in result.items()
        if str(key).isdigit() and isinstance(value, dict)
    ]


class SyspassV2(VaultAdapter):
    """Adapter for the flat sysPass 2 JSON-RPC API."""

    version = "SyspassV2"

    def _object(self, method: str, args=None, needs_password=False) -> Dict[str, Any]:
        result = self.call(method, args, needs_password)
        if not isinstance(result, dict):
            raise ApiError(f"Invalid response for {method}", ApiError.INVALID_RESPONSE)
        return result

    def _create(self, method: str, args: Dict[str, Any]) -> int:
        item_id = lenient_int(self._object(method, args, needs_password=True), "itemId")
        if item_id is None:
            raise ApiError(f"{method}: entity was not created", ApiError.INVALID_RESPONSE)
        return item_id

    def _delete(self, method: str, item_id: int) -> bool:
        return lenient_int(self._object(method, {"id": item_id}), "resultCode") == 0

    # Accounts

    def search(self, query: str, include_password: bool = False,
               category_id: Optional[int] = None) -> List[Account]:
        result = self.call("getAccountSearch", {"text": query, "categoryId": category_id})
        if not isinstance(result, (list, dict)):
            raise ApiError("Invalid response for getAccountSearch", ApiError.INVALID_RESPONSE)

        accounts = [account for account in map(_account, keyed_records(result)) if account]
        if include_password:
            self.fill_passwords(accounts)
        return accounts

    def fetch_password(self, account_id: int) -> str:
        password = self._object("getAccountPassword", {"id": account_id}, needs_password=True).get("pass")
        if password is None:
            raise ApiError(f"Account {account_id} not found", ApiError.NOT_FOUND)
        return str(password)

    def view_account(self, account_id: int) -> Account:
        account = _account(self._object("getAccountData", {"id": account_id}, needs_password=True))
        if account is None:
            raise ApiError(f"Account {account_id} not found", ApiError.NOT_FOUND)
        return account

    def create_account(self, spec: AccountSpec) -> int:
        return self._create("addAccount", {
            "name": spec.name,
            "categoryId": spec.category_id,
            "customerId": spec.client_id,
            "pass": spec.password,
            "login": spec.login,
            "url": spec.url,
            "notes": spec.notes,
        })

    def update_account(self, account_id: int, spec: AccountSpec) -> None:
        self.not_supported("editing accounts")

    def change_password(self, account_id: int, password: str,
                        expire_date: Optional[int] = None) -> None:
        self.not_supported("changing passwords")

    def delete_account(self, account_id: int) -> bool:
        return self._delete("deleteAccount", account_id)

    # Categories

    def list_categories(self) -> List[Category]:
        categories = [c for c in map(_category, keyed_records(self.call("getCategories"))) if c]
        return sorted(categories, key=lambda c: c.id)

    def get_category(self, category_id: int) -> Category:
        self.not_supported("viewing categories")

    def create_category(self, spec: CategorySpec) -> int:
        return self._create("addCategory", {"name": spec.name, "description": spec.description})

    def update_category(self, category_id: int, spec: CategorySpec) -> None:
        self.not_supported("editing categories")

    def delete_category(self, category_id: int) -> bool:
        return self._delete("deleteCategory", category_id)

    # Clients

    def list_clients(self) -> List[Client]:
        clients = [c for c in map(_client, keyed_records(self.call("getCustomers"))) if c]
        return sorted(clients, key=lambda c: c.id)

    def get_client(self, client_id: int) -> Client:
        self.not_supported("viewing clients")

    def create_client(self, spec: ClientSpec) -> int:
        return self._create("addCustomer", {"name": spec.name, "description": spec.description})

    def update_client(self, client_id: int, spec: ClientSpec) -> None:
        self.not_supported("editing clients")

    def delete_client(self, client_id: int) -> bool:
        return self._delete("deleteCustomer", client_id)

#!/usr/bin/env python3
"""sysPass 3.x API adapter.

https://syspass-doc.readthedocs.io/en/3.1/application/api.html

Results arrive as {"itemId": ..., "result": ..., "resultCode": 0}.
Optional fields are either omitted or populated.
"""

from typing import Any, Dict, List, Optional

from .api import VaultAdapter
from .errors import ApiError
from .models import Account, AccountSpec, Category, CategorySpec, Client, ClientSpec


def _optional_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _account(data: Dict[str, Any]) -> Account:
    return Account(
        id=int(data["id"]),
        name=data.get("name") or "",
        login=data.get("login") or "",
        url=data.get("url") or None,
        notes=data.get("notes") or None,
        category_id=_optional_int(data.get("categoryId")),
        client_id=_optional_int(data.get("clientId")),
        category_name=data.get("categoryName"),
        client_name=data.get("clientName"),
    )


def _category(data: Dict[str, Any]) -> Category:
    return Category(
        id=int(data["id"]),
        name=data.get("name") or "",
        description=data.get("description") or None,
    )


def _client(data: Dict[str, Any]) -> Client:
    return Client(
        id=int(data["id"]),
        name=data.get("name") or "",
        description=data.get("description") or None,
        is_global=bool(int(data.get("isGlobal") or 0)),
    )


class SyspassV3(VaultAdapter):
    """Adapter for the namespaced sysPass 3 JSON-RPC API."""

    version = "SyspassV3"

    def _result(self, method: str, args=None, needs_password=False) -> Dict[str, Any]:
        result = self.call(method, args, needs_password)
        if not isinstance(result, dict):
            raise ApiError(f"Invalid response for {method}", ApiError.INVALID_RESPONSE)
        return result

    def _payload(self, method: str, args=None, needs_password=False) -> Any:
        return self._result(method, args, needs_password).get("result")

    def _list(self, method: str, args=None) -> List[Dict[str, Any]]:
        payload = self._payload(method, args)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise ApiError(f"Invalid response for {method}", ApiError.INVALID_RESPONSE)
        return payload

    def _create(self, method: str, args: Dict[str, Any]) -> int:
        item_id = self._result(method, args, needs_password=True).get("itemId")
        if item_id is None:
            raise ApiError(f"{method}: entity was not created", ApiError.INVALID_RESPONSE)
        return int(item_id)

    def _delete(self, method: str, item_id: int) -> bool:
        return self._result(method, {"id": item_id}).get("resultCode") == 0

    def _view(self, method: str, item_id: int) -> Dict[str, Any]:
        payload = self._payload(method, {"id": item_id}, needs_password=True)
        if not isinstance(payload, dict):
            raise ApiError(f"Item {item_id} not found", ApiError.NOT_FOUND)
        return payload

    # Accounts

    def search(self, query: str, include_password: bool = False,
               category_id: Optional[int] = None) -> List[Account]:
        rows = self._list("account/search", {"text": query, "categoryId": category_id})
        accounts = [_account(row) for row in rows]
        if include_password:
            self.fill_passwords(accounts)
        return accounts

    def fetch_password(self, account_id: int) -> str:
        payload = self._payload("account/viewPass", {"id": account_id}, needs_password=True)
        if not isinstance(payload, dict) or payload.get("password") is None:
            raise ApiError(f"Account {account_id} not found", ApiError.NOT_FOUND)
        return str(payload["password"])

    def view_account(self, account_id: int) -> Account:
        return _account(self._view("account/view", account_id))

    def _account_args(self, spec: AccountSpec) -> Dict[str, Any]:
        return {
            "name": spec.name,
            "categoryId": spec.category_id,
            "clientId": spec.client_id,
            "pass": spec.password,
            "login": spec.login,
            "url": spec.url,
            "notes": spec.notes,
            "expireDate": spec.expire_date,
        }

    def create_account(self, spec: AccountSpec) -> int:
        return self._create("account/create", self._account_args(spec))

    def update_account(self, account_id: int, spec: AccountSpec) -> None:
        args = self._account_args(spec)
        # Passwords are only changed through account/editPass
        args.pop("pass")
        args.pop("expireDate")
        args["id"] = account_id
        self._result("account/edit", args, needs_password=True)

    def change_password(self, account_id: int, password: str,
                        expire_date: Optional[int] = None) -> None:
        self._result("account/editPass", {
            "id": account_id,
            "pass": password,
            "expireDate": expire_date or 0,
        }, needs_password=True)

    def delete_account(self, account_id: int) -> bool:
        return self._delete("account/delete", account_id)

    # Categories

    def list_categories(self) -> List[Category]:
        categories = [_category(row) for row in self._list("category/search")]
        return sorted(categories, key=lambda c: c.id)

    def get_category(self, category_id: int) -> Category:
        return _category(self._view("category/view", category_id))

    def create_category(self, spec: CategorySpec) -> int:
        return self._create("category/create", {"name": spec.name, "description": spec.description})

    def update_category(self, category_id: int, spec: CategorySpec) -> None:
        self._result("category/edit", {
            "id": category_id,
            "name": spec.name,
            "description": spec.description,
        }, needs_password=True)

    def delete_category(self, category_id: int) -> bool:
        return self._delete("category/delete", category_id)

    # Clients

    def list_clients(self) -> List[Client]:
        clients = [_client(row) for row in self._list("client/search")]
        return sorted(clients, key=lambda c: c.id)

    def get_client(self, client_id: int) -> Client:
        return _client(self._view("client/view", client_id))

    def _client_args(self, spec: ClientSpec) -> Dict[str, Any]:
        return {
            "name": spec.name,
            "description": spec.description,
            "global": int(spec.is_global),
        }

    def create_client(self, spec: ClientSpec) -> int:
        return self._create("client/create", self._client_args(spec))

    def update_client(self, client_id: int, spec: ClientSpec) -> None:
        args = self._client_args(spec)
        args["id"] = client_id
        self._result("client/edit", args, needs_password=True)

    def delete_client(self, client_id: int) -> bool:
        return self._delete("client/delete", client_id)

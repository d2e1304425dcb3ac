#!/usr/bin/env python3
"""Domain model shared by both API generations.

Optional fields always use None for "absent", whatever the wire format.
"""

from dataclasses import dataclass, field
from typing import Optional

from .errors import ValidationError


@dataclass
class Account:
    """A vault account as returned by an adapter."""

    id: int
    name: str
    login: str = ""
    url: Optional[str] = None
    notes: Optional[str] = None
    category_id: Optional[int] = None
    client_id: Optional[int] = None
    category_name: Optional[str] = None
    client_name: Optional[str] = None
    # Populated only by an explicit password fetch
    password: Optional[str] = field(default=None, repr=False)

    @property
    def is_ssh(self) -> bool:
        return bool(self.url) and self.url.lower().startswith("ssh://")

    def __str__(self):
        parts = [f"{self.id}.", self.name]
        if self.url:
            parts += ["-", self.url.replace("ssh://", "")]
        if self.client_name:
            parts.append(f"({self.client_name})")
        return " ".join(parts)


@dataclass
class Category:
    id: int
    name: str
    description: Optional[str] = None

    def __str__(self):
        return f"{self.id}. {self.name}"


@dataclass
class Client:
    id: int
    name: str
    description: Optional[str] = None
    is_global: bool = False

    def __str__(self):
        return f"{self.id}. {self.name}{' (*)' if self.is_global else ''}"


def _check_id(value, label):
    if value is not None and value <= 0:
        raise ValidationError(f"Invalid {label} id: {value}")


@dataclass
class AccountSpec:
    """Caller supplied account data for create and update calls."""

    name: str
    password: Optional[str] = field(default=None, repr=False)
    login: str = ""
    url: Optional[str] = None
    notes: Optional[str] = None
    category_id: Optional[int] = None
    client_id: Optional[int] = None
    expire_date: Optional[int] = None

    def validate(self, require_password: bool = True) -> None:
        """Reject incomplete data before anything is sent.

        Raises:
            ValidationError: If the name or password is missing or an id is invalid

        """
        if not self.name or not self.name.strip():
            raise ValidationError("Account name can't be empty")
        if require_password and not self.password:
            raise ValidationError("Password can't be empty")
        if self.category_id is None:
            raise ValidationError("Category id is required")
        if self.client_id is None:
            raise ValidationError("Client id is required")
        _check_id(self.category_id, "category")
        _check_id(self.client_id, "client")


@dataclass
class CategorySpec:
    name: str
    description: str = ""

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Category name can't be empty")


@dataclass
class ClientSpec:
    name: str
    description: str = ""
    is_global: bool = False

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Client name can't be empty")

#!/usr/bin/env python3
"""Usage Store - Per-account retrieval counters used to rank search results.

The file is read once when a command starts and written once when it ends.
Ranking is a convenience: I/O problems are logged and never abort a command.
Two invocations racing on the same file can lose an update.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List

from .models import Account

logger = logging.getLogger(__name__)


class UsageStore:
    """Mapping of account id to number of password retrievals."""

    def __init__(self, counts: Dict[int, int] = None):
        self.counts: Dict[int, int] = dict(counts or {})

    @classmethod
    def load(cls, path: Path) -> "UsageStore":
        """Load counters from a JSON file.

        Args:
            path: Usage file (e.g., ~/.syspass/usage.json)

        Returns:
            A store with the valid entries found, empty if the file is
            missing, unreadable or malformed

        """
        path = Path(path)
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring usage file %s: %s", path, e)
            return cls()

        if not isinstance(data, dict):
            logger.warning("Ignoring usage file %s: not a JSON object", path)
            return cls()

        counts = {}
        for key, value in data.items():
            try:
                account_id = int(key)
            except ValueError:
                continue
            # Reject bools, floats and negative counters
            if type(value) is not int or value < 0:
                continue
            counts[account_id] = value

        return cls(counts)

    def save(self, path: Path) -> bool:
        """Overwrite the usage file with the current counters.

        Returns:
            True if the file was written

        """
        path = Path(path)
        data = {str(account_id): count for account_id, count in sorted(self.counts.items())}

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(data, f)
                f.write("\n")
        except OSError as e:
            logger.warning("Could not write usage file %s: %s", path, e)
            return False

        return True

    def count(self, account_id: int) -> int:
        return self.counts.get(account_id, 0)

    def record_use(self, account_id: int) -> int:
        """Increment an account's counter and return the new value."""
        self.counts[account_id] = self.count(account_id) + 1
        return self.counts[account_id]

    def rank(self, accounts: Iterable[Account]) -> List[Account]:
        """Most used first; equal counts by case-insensitive name, then id."""
        return sorted(
            accounts,
            key=lambda account: (-self.count(account.id), account.name.casefold(), account.id)
        )

    def as_dict(self) -> Dict[str, int]:
        return {str(account_id): count for account_id, count in self.counts.items()}

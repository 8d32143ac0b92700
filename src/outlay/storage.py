"""
Local persistence for expenses and export bookkeeping.

A KeyValueStore is a single JSON object on disk. ExpenseStore keeps the
expense list under one key; export history and cloud integration state
live under keys of their own.
"""

import json
import logging
import os
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Union

from .exceptions import StorageError
from .models import Category, Expense, parse_datetime

logger = logging.getLogger(__name__)

EXPENSES_KEY = 'expense-tracker-data'

# Fields an update may change; id and created_at are fixed at creation
UPDATABLE_FIELDS = ('date', 'amount', 'category', 'description')


class KeyValueStore:
    """JSON-file backed key/value store with get/set/remove."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            content = self.path.read_text(encoding='utf-8')
        except OSError as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e
        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise StorageError(f"Data file is not valid JSON: {self.path} ({e})") from e
        if not isinstance(data, dict):
            raise StorageError(f"Data file must contain a JSON object: {self.path}")
        return data

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file, then rename over the target
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix='.outlay-', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f"Could not write {self.path}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class ExpenseStore:
    """Expense collection persisted in a KeyValueStore."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def get_expenses(self) -> List[Expense]:
        """Load all expenses in stored order."""
        records = self.kv.get(EXPENSES_KEY, [])
        try:
            return [Expense.from_dict(r) for r in records]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Malformed expense record in {self.kv.path}: {e}") from e

    def save_expenses(self, expenses: List[Expense]) -> None:
        """Replace the stored collection."""
        self.kv.set(EXPENSES_KEY, [e.to_dict() for e in expenses])
        logger.debug("Saved %d expenses to %s", len(expenses), self.kv.path)

    def add_expense(self, date, amount: float, category, description: str) -> Expense:
        """Create and store a new expense. Returns the stored record."""
        now = datetime.now()
        expense = Expense(
            id=str(uuid.uuid4()),
            date=parse_datetime(date),
            amount=float(amount),
            category=Category.parse(category) if isinstance(category, str) else category,
            description=description.strip(),
            created_at=now,
            updated_at=now,
        )
        expenses = self.get_expenses()
        expenses.append(expense)
        self.save_expenses(expenses)
        logger.info("Added expense %s (%s %.2f)", expense.id, expense.category, expense.amount)
        return expense

    def update_expense(self, expense_id: str, **changes) -> Optional[Expense]:
        """Apply changes to one expense.

        Returns the updated record, or None if no expense has that id.
        Raises ValueError for fields that cannot be updated.
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        if 'date' in changes:
            changes['date'] = parse_datetime(changes['date'])
        if 'amount' in changes:
            changes['amount'] = float(changes['amount'])
        if isinstance(changes.get('category'), str):
            changes['category'] = Category.parse(changes['category'])

        expenses = self.get_expenses()
        for index, expense in enumerate(expenses):
            if expense.id == expense_id:
                updated = expense.with_changes(updated_at=datetime.now(), **changes)
                expenses[index] = updated
                self.save_expenses(expenses)
                logger.info("Updated expense %s", expense_id)
                return updated
        return None

    def delete_expense(self, expense_id: str) -> bool:
        """Delete one expense. Returns False if no expense has that id."""
        expenses = self.get_expenses()
        remaining = [e for e in expenses if e.id != expense_id]
        if len(remaining) == len(expenses):
            return False
        self.save_expenses(remaining)
        logger.info("Deleted expense %s", expense_id)
        return True

    def clear_all(self) -> None:
        self.kv.remove(EXPENSES_KEY)

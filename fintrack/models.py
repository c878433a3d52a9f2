from __future__ import annotations
import math
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional, List, Dict, Literal

from fintrack.config import FALLBACK_CATEGORY


TransactionType = Literal["income", "expense"]
Frequency = Literal["weekly", "monthly", "yearly"]

TRANSACTION_TYPES = ("income", "expense")
FREQUENCIES = ("weekly", "monthly", "yearly")


@dataclass
class Transaction:
    id: str
    amount: float
    t_date: date
    desc: str
    category: str
    t_type: TransactionType


@dataclass
class Category:
    id: str
    name: str
    color: str
    is_default: bool = False


@dataclass
class SavingsGoal:
    target: float = 0.0
    saved: float = 0.0


@dataclass
class RecurringTransaction:
    id: str
    amount: float
    desc: str
    category: str
    t_type: TransactionType
    frequency: Frequency
    next_date: date


@dataclass
class FilterOptions:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category: Optional[str] = None
    t_type: str = "all"
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    notes: Optional[str] = None


DEFAULT_CATEGORIES = (
    Category("1", "Food", "#FF6B6B", True),
    Category("2", "Travel", "#4ECDC4", True),
    Category("3", "Rent", "#45B7D1", True),
    Category("4", "Salary", "#96CEB4", True),
    Category("5", "Utilities", "#FFEAA7", True),
    Category("6", "Entertainment", "#DDA0DD", True),
)


@dataclass
class FinanceState:
    """All collections owned by one signed-in user."""
    transactions: List[Transaction] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    budgets: Dict[str, float] = field(default_factory=dict)
    savings_goals: Dict[str, SavingsGoal] = field(default_factory=dict)
    recurring: List[RecurringTransaction] = field(default_factory=list)

    @classmethod
    def seeded(cls) -> FinanceState:
        return cls(categories=[replace(c) for c in DEFAULT_CATEGORIES])

    def clear(self) -> None:
        self.transactions = []
        self.categories = []
        self.budgets = {}
        self.savings_goals = {}
        self.recurring = []

    def to_record(self) -> dict:
        """Snapshot the state as plain JSON-ready data."""
        return {
            "transactions": [
                {
                    "id": t.id,
                    "amount": t.amount,
                    "date": t.t_date.isoformat(),
                    "description": t.desc,
                    "category": t.category,
                    "type": t.t_type,
                } for t in self.transactions
            ],
            "categories": [
                {
                    "id": c.id,
                    "name": c.name,
                    "color": c.color,
                    "isDefault": c.is_default,
                } for c in self.categories
            ],
            "budgets": dict(self.budgets),
            "savingsGoals": {
                name: {"target": g.target, "saved": g.saved}
                for name, g in self.savings_goals.items()
            },
            "recurringTransactions": [
                {
                    "id": r.id,
                    "amount": r.amount,
                    "description": r.desc,
                    "category": r.category,
                    "type": r.t_type,
                    "frequency": r.frequency,
                    "nextDate": r.next_date.isoformat(),
                } for r in self.recurring
            ],
        }

    @classmethod
    def from_record(cls, data: dict) -> FinanceState:
        state = cls()

        for t_data in data.get("transactions", []):
            try:
                state.transactions.append(Transaction(
                    id=str(t_data["id"]),
                    amount=_checked_amount(t_data["amount"]),
                    t_date=date.fromisoformat(t_data["date"]),
                    desc=t_data.get("description", ""),
                    category=_checked_category(t_data["category"]),
                    t_type=_checked_type(t_data["type"]),
                ))
            except (KeyError, TypeError, ValueError) as e:
                print(f"Warning: Skipping invalid transaction {t_data.get('id')}: {e}")

        for c_data in data.get("categories", []):
            try:
                state.categories.append(Category(
                    id=str(c_data["id"]),
                    name=c_data["name"],
                    color=c_data.get("color", ""),
                    is_default=bool(c_data.get("isDefault", False)),
                ))
            except (KeyError, TypeError) as e:
                print(f"Warning: Skipping invalid category {c_data.get('id')}: {e}")
        if not state.categories:
            state.categories = [replace(c) for c in DEFAULT_CATEGORIES]
        elif not any(c.name == FALLBACK_CATEGORY for c in state.categories):
            # Category deletes move transactions to Food, so it has to exist
            state.categories.insert(0, replace(DEFAULT_CATEGORIES[0]))

        for name, limit in data.get("budgets", {}).items():
            try:
                state.budgets[name] = float(limit)
            except (TypeError, ValueError) as e:
                print(f"Warning: Skipping invalid budget '{name}': {e}")

        for name, g_data in data.get("savingsGoals", {}).items():
            try:
                state.savings_goals[name] = SavingsGoal(
                    target=float(g_data.get("target", 0)),
                    saved=float(g_data.get("saved", 0)),
                )
            except (AttributeError, TypeError, ValueError) as e:
                print(f"Warning: Skipping invalid savings goal '{name}': {e}")

        for r_data in data.get("recurringTransactions", []):
            try:
                frequency = r_data["frequency"]
                if frequency not in FREQUENCIES:
                    raise ValueError(f"unknown frequency {frequency!r}")
                state.recurring.append(RecurringTransaction(
                    id=str(r_data["id"]),
                    amount=_checked_amount(r_data["amount"]),
                    desc=r_data.get("description", ""),
                    category=_checked_category(r_data["category"]),
                    t_type=_checked_type(r_data["type"]),
                    frequency=frequency,
                    next_date=date.fromisoformat(r_data["nextDate"]),
                ))
            except (KeyError, TypeError, ValueError) as e:
                print(f"Warning: Skipping invalid recurring transaction {r_data.get('id')}: {e}")

        return state


def _checked_type(value) -> TransactionType:
    if value not in TRANSACTION_TYPES:
        raise ValueError(f"unknown transaction type {value!r}")
    return value


def _checked_amount(value) -> float:
    amount = float(value)
    if not math.isfinite(amount) or amount <= 0:
        raise ValueError(f"amount must be positive, got {value!r}")
    return amount


def _checked_category(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"category is required, got {value!r}")
    return value

import math
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from numbers import Real
from typing import Optional
from uuid import uuid4

from fintrack.config import FALLBACK_CATEGORY
from fintrack.errors import InvalidInput, NotFound, Protected
from fintrack.models import (
    TransactionType, Frequency, Transaction, Category, SavingsGoal, RecurringTransaction,
    FilterOptions, FinanceState, TRANSACTION_TYPES, FREQUENCIES
)


def new_id() -> str:
    return uuid4().hex


def _check_amount(amount, allow_zero: bool = False) -> float:
    if isinstance(amount, bool) or not isinstance(amount, (Real, Decimal)):
        raise InvalidInput(f"Amount must be a number, got {amount!r}")
    if isinstance(amount, Decimal) and not amount.is_finite():
        raise InvalidInput(f"Amount must be finite, got {amount}")
    if not math.isfinite(float(amount)):
        raise InvalidInput(f"Amount must be finite, got {amount}")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidInput(f"Amount must be {'non-negative' if allow_zero else 'positive'}, got {amount}")
    return float(amount)


def _check_fields(amount, t_type, category) -> float:
    if t_type not in TRANSACTION_TYPES:
        raise InvalidInput("Type must be 'income' or 'expense'")
    if not isinstance(category, str) or not category.strip():
        raise InvalidInput("Category is required")
    return _check_amount(amount)


def _check_date(value, field_name: str = "date") -> date:
    # datetime is a date subclass but would not survive a save/load round trip
    if isinstance(value, datetime) or not isinstance(value, date):
        raise InvalidInput(f"{field_name} must be a date, got {value!r}")
    return value


# ===== TRANSACTIONS =====

def add_transaction(
        state: FinanceState,
        amount: float,
        t_type: TransactionType,
        t_date: date,
        category: str,
        desc: str = "",
) -> Transaction:
    amount = _check_fields(amount, t_type, category)
    transaction = Transaction(
        id=new_id(),
        amount=amount,
        t_date=_check_date(t_date),
        desc=desc or "",
        category=category,
        t_type=t_type,
    )
    # Newest first
    state.transactions.insert(0, transaction)
    return transaction


def find_transaction(state: FinanceState, transaction_id: str) -> Optional[Transaction]:
    for t in state.transactions:
        if t.id == transaction_id:
            return t
    return None


def update_transaction(
        state: FinanceState,
        transaction_id: str,
        amount: float,
        t_type: TransactionType,
        t_date: date,
        category: str,
        desc: str = "",
) -> Transaction:
    amount = _check_fields(amount, t_type, category)
    _check_date(t_date)

    transaction = find_transaction(state, transaction_id)
    if transaction is None:
        raise NotFound(f"Transaction {transaction_id} not found")

    transaction.amount = amount
    transaction.t_type = t_type
    transaction.t_date = t_date
    transaction.category = category
    transaction.desc = desc or ""
    return transaction


def delete_transaction(state: FinanceState, transaction_id: str) -> bool:
    """Remove a transaction. Deleting an unknown id is not an error."""
    for i, t in enumerate(state.transactions):
        if t.id == transaction_id:
            state.transactions.pop(i)
            return True
    return False


# ===== CATEGORIES =====

def find_category(state: FinanceState, category_id: str) -> Optional[Category]:
    for cat in state.categories:
        if cat.id == category_id:
            return cat
    return None


def _check_category_name(state: FinanceState, name, skip_id: Optional[str] = None) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("Please enter a category name")
    for cat in state.categories:
        if cat.name == name and cat.id != skip_id:
            raise InvalidInput(f"Category '{name}' already exists")
    return name


def add_category(state: FinanceState, name: str, color: str) -> Category:
    category = Category(
        id=new_id(),
        name=_check_category_name(state, name),
        color=color,
        is_default=False,
    )
    state.categories.append(category)
    return category


def update_category(state: FinanceState, category_id: str, name: str, color: str) -> Category:
    """Rename or recolor a user category.

    Budgets and transactions refer to categories by name, so a rename leaves
    them pointing at the old name.
    """
    category = find_category(state, category_id)
    if category is None:
        raise NotFound(f"Category {category_id} not found")
    if category.is_default:
        raise Protected("Default categories cannot be edited")

    category.name = _check_category_name(state, name, skip_id=category_id)
    category.color = color
    return category


def delete_category(state: FinanceState, category_id: str) -> bool:
    category = find_category(state, category_id)
    if category is None:
        return False
    if category.is_default:
        raise Protected("Default categories cannot be deleted")

    # Build both collections first so readers never see a half-applied delete
    categories = [cat for cat in state.categories if cat.id != category_id]
    transactions = [
        replace(t, category=FALLBACK_CATEGORY) if t.category == category.name else t
        for t in state.transactions
    ]
    state.categories = categories
    state.transactions = transactions
    return True


# ===== FILTERING =====

def matches(transaction: Transaction, options: FilterOptions) -> bool:
    if options.start_date is not None and transaction.t_date < options.start_date:
        return False
    if options.end_date is not None and transaction.t_date > options.end_date:
        return False
    if options.category and transaction.category != options.category:
        return False
    if options.t_type and options.t_type != "all" and transaction.t_type != options.t_type:
        return False
    if options.min_amount is not None and transaction.amount < options.min_amount:
        return False
    if options.max_amount is not None and transaction.amount > options.max_amount:
        return False
    if options.notes and options.notes.lower() not in transaction.desc.lower():
        return False
    return True


def filter_transactions(state: FinanceState, options: Optional[FilterOptions] = None) -> list[Transaction]:
    if options is None:
        options = FilterOptions()
    return [t for t in state.transactions if matches(t, options)]


# ===== BUDGETS =====

def set_budget(state: FinanceState, category_name: str, limit: float) -> None:
    state.budgets[category_name] = _check_amount(limit, allow_zero=True)


def get_budget(state: FinanceState, category_name: str) -> Optional[float]:
    """Return the limit for a category, or None when no budget is set."""
    return state.budgets.get(category_name)


def remove_budget(state: FinanceState, category_name: str) -> bool:
    return state.budgets.pop(category_name, None) is not None


def get_category_usage(state: FinanceState, category_name: str) -> float:
    return sum(
        t.amount for t in state.transactions
        if t.t_type == "expense" and t.category == category_name
    )


def is_over_budget(state: FinanceState, category_name: str) -> bool:
    limit = get_budget(state, category_name)
    if not limit:
        return False
    return get_category_usage(state, category_name) > limit


def budget_status(state: FinanceState) -> dict:
    status = {}
    for name, limit in state.budgets.items():
        used = get_category_usage(state, name)
        status[name] = {
            "limit": limit,
            "used": used,
            "remaining": limit - used,
            "over": bool(limit) and used > limit,
        }
    return status


# ===== SAVINGS GOALS =====

def set_goal(state: FinanceState, name: str, target: float) -> SavingsGoal:
    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("Goal name is required")
    target = _check_amount(target, allow_zero=True)

    goal = state.savings_goals.get(name)
    if goal is None:
        goal = SavingsGoal(target=target, saved=0.0)
        state.savings_goals[name] = goal
    else:
        goal.target = target
    return goal


def deposit(state: FinanceState, name: str, amount: float) -> SavingsGoal:
    """Add to a goal's saved amount, creating the goal with a zero target if needed."""
    amount = _check_amount(amount, allow_zero=True)
    goal = state.savings_goals.get(name)
    if goal is None:
        goal = SavingsGoal(target=0.0, saved=0.0)
        state.savings_goals[name] = goal
    goal.saved += amount
    return goal


def get_progress(state: FinanceState, name: str) -> float:
    goal = state.savings_goals.get(name)
    if goal is None or not goal.target:
        return 0.0
    return min(max(goal.saved / goal.target, 0.0), 1.0)


def remove_goal(state: FinanceState, name: str) -> bool:
    return state.savings_goals.pop(name, None) is not None


# ===== RECURRING TRANSACTIONS =====

def _check_recurring(amount, t_type, category, frequency, next_date) -> float:
    amount = _check_fields(amount, t_type, category)
    if frequency not in FREQUENCIES:
        raise InvalidInput("Invalid interval, use: weekly/monthly/yearly")
    _check_date(next_date, "next_date")
    return amount


def find_recurring(state: FinanceState, recurring_id: str) -> Optional[RecurringTransaction]:
    for r in state.recurring:
        if r.id == recurring_id:
            return r
    return None


def add_recurring(
        state: FinanceState,
        amount: float,
        t_type: TransactionType,
        category: str,
        frequency: Frequency,
        next_date: date,
        desc: str = "",
) -> RecurringTransaction:
    amount = _check_recurring(amount, t_type, category, frequency, next_date)
    recurring = RecurringTransaction(
        id=new_id(),
        amount=amount,
        desc=desc or "",
        category=category,
        t_type=t_type,
        frequency=frequency,
        next_date=next_date,
    )
    state.recurring.append(recurring)
    return recurring


def update_recurring(
        state: FinanceState,
        recurring_id: str,
        amount: float,
        t_type: TransactionType,
        category: str,
        frequency: Frequency,
        next_date: date,
        desc: str = "",
) -> RecurringTransaction:
    amount = _check_recurring(amount, t_type, category, frequency, next_date)
    recurring = find_recurring(state, recurring_id)
    if recurring is None:
        raise NotFound(f"Recurring transaction {recurring_id} not found")

    recurring.amount = amount
    recurring.t_type = t_type
    recurring.category = category
    recurring.frequency = frequency
    recurring.next_date = next_date
    recurring.desc = desc or ""
    return recurring


def delete_recurring(state: FinanceState, recurring_id: str) -> bool:
    count = len(state.recurring)
    state.recurring[:] = [r for r in state.recurring if r.id != recurring_id]
    return len(state.recurring) != count

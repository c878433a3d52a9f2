from datetime import date
from typing import List

from dateutil.relativedelta import relativedelta

from fintrack.errors import InvalidInput
from fintrack.logic import add_transaction
from fintrack.models import Frequency, FinanceState, Transaction

STEPS = {
    "weekly": relativedelta(weeks=1),
    "monthly": relativedelta(months=1),
    "yearly": relativedelta(years=1),
}


def advance_date(current: date, frequency: Frequency) -> date:
    """Next due date; month and year steps clamp to the end of shorter months."""
    return current + STEPS[frequency]


def process_recurring(state: FinanceState, today: date) -> List[Transaction]:
    """Materialize every recurring transaction that is due on or before ``today``.

    Each recurring transaction fires at most once per call and its next date
    moves forward one period, so a backlog of several periods is worked off
    over successive runs. An entry that cannot be turned into a valid
    transaction is left untouched and the rest are still processed.
    """
    created = []
    for recurring in state.recurring:
        if recurring.next_date > today:
            continue
        try:
            transaction = add_transaction(
                state,
                amount=recurring.amount,
                t_type=recurring.t_type,
                t_date=recurring.next_date,
                category=recurring.category,
                desc=recurring.desc,
            )
        except InvalidInput as e:
            print(f"Warning: Skipping invalid recurring transaction {recurring.id}: {e}")
            continue
        created.append(transaction)
        recurring.next_date = advance_date(recurring.next_date, recurring.frequency)
    return created

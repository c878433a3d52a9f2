import math
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Tuple

from dateutil.relativedelta import relativedelta

from fintrack.models import FinanceState, Transaction

MEAL_PLANNING_TIP = "Food takes up a large share of your spending. Try planning meals ahead to cut grocery and takeout costs."
ENTERTAINMENT_TIP = "Entertainment spending is high. Look for free or low-cost alternatives."
SAVINGS_GOAL_TIP = "You are spending most of what you earn. Consider setting a savings goal."

FOOD_RATIO = 0.3
ENTERTAINMENT_RATIO = 0.2
SPENDING_RATIO = 0.8

PREDICTION_MONTHS = 3


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def summarize(transactions: Iterable[Transaction]) -> Dict[str, float]:
    totals = {"income": 0.0, "expense": 0.0}
    for t in transactions:
        totals[t.t_type] += t.amount
    totals["balance"] = totals["income"] - totals["expense"]
    return totals


def category_totals(state: FinanceState, transactions: Iterable[Transaction]) -> Dict[str, float]:
    """Amount per known category, skipping categories with nothing recorded.

    Income and expense are summed together, which is what the distribution
    chart shows.
    """
    sums = defaultdict(float)
    for t in transactions:
        sums[t.category] += t.amount
    return {
        cat.name: sums[cat.name]
        for cat in state.categories
        if sums[cat.name] > 0
    }


def monthly_balance_trend(transactions: Iterable[Transaction]) -> List[Tuple[str, float]]:
    months = defaultdict(lambda: {"income": 0.0, "expense": 0.0})
    for t in transactions:
        months[t.t_date.strftime("%Y-%m")][t.t_type] += t.amount
    return [
        (month, data["income"] - data["expense"])
        for month, data in sorted(months.items())
    ]


def get_suggestions(state: FinanceState) -> List[str]:
    totals = summarize(state.transactions)
    total_expense = totals["expense"]
    total_income = totals["income"]

    expense_by_category = defaultdict(float)
    for t in state.transactions:
        if t.t_type == "expense":
            expense_by_category[t.category] += t.amount

    suggestions = []
    if total_expense > 0:
        if expense_by_category["Food"] / total_expense > FOOD_RATIO:
            suggestions.append(MEAL_PLANNING_TIP)
        if expense_by_category["Entertainment"] / total_expense > ENTERTAINMENT_RATIO:
            suggestions.append(ENTERTAINMENT_TIP)
    if total_income > 0 and total_expense / total_income > SPENDING_RATIO:
        suggestions.append(SAVINGS_GOAL_TIP)
    return suggestions


def predict_expenses(state: FinanceState, today: date) -> Dict[str, int]:
    """Average expense per category over the current and two previous calendar months.

    Months without expenses still count towards the average.
    """
    months = [
        (today - relativedelta(months=i)).strftime("%Y-%m")
        for i in range(PREDICTION_MONTHS)
    ]

    monthly = defaultdict(float)
    for t in state.transactions:
        if t.t_type != "expense":
            continue
        month = t.t_date.strftime("%Y-%m")
        if month in months:
            monthly[(t.category, month)] += t.amount

    return {
        cat.name: round_half_up(sum(monthly[(cat.name, m)] for m in months) / PREDICTION_MONTHS)
        for cat in state.categories
    }

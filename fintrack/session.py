import threading
from datetime import date
from typing import Callable, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from fintrack import insights, logic, recurring
from fintrack.config import DAILY_RECHECK, RECHECK_HOUR
from fintrack.errors import FinanceError
from fintrack.events import EventBus, STATE_CHANGED
from fintrack.models import FilterOptions, FinanceState, Transaction
from fintrack.storage import PersistenceWriter


class FinanceSession:
    """The finance state of one signed-in user, plus its persistence wiring.

    Every mutation runs under a lock, then publishes the full snapshot as a
    ``STATE_CHANGED`` event; a ``PersistenceWriter`` turns those into store
    writes in publish order. Queries only read the in-memory state.
    """

    def __init__(self, store, clock: Callable[[], date] = date.today,
                 daily_recheck: bool = DAILY_RECHECK, recheck_hour: int = RECHECK_HOUR):
        self.store = store
        self.clock = clock
        self.daily_recheck = daily_recheck
        self.recheck_hour = recheck_hour
        self.identity: Optional[str] = None
        self.state = FinanceState()
        self.bus = EventBus()
        self.writer = PersistenceWriter(store, self.bus)
        self._lock = threading.RLock()
        self._scheduler: Optional[BackgroundScheduler] = None

    # ===== LIFECYCLE =====
    def sign_in(self, identity: str) -> None:
        if self.identity is not None:
            self.sign_out()

        record = self.store.load_snapshot(identity)
        with self._lock:
            self.identity = identity
            if record is None:
                self.state = FinanceState.seeded()
                self._publish()
            else:
                self.state = FinanceState.from_record(record)

        self.run_recurring()
        if self.daily_recheck:
            self._scheduler = BackgroundScheduler()
            self._scheduler.add_job(self.run_recurring, CronTrigger(hour=self.recheck_hour, minute=0))
            self._scheduler.start()

    def sign_out(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=True)
            self._scheduler = None
        self.writer.flush()
        with self._lock:
            self.identity = None
            self.state.clear()

    def close(self) -> None:
        if self.identity is not None:
            self.sign_out()
        self.writer.close()

    @property
    def signed_in(self) -> bool:
        return self.identity is not None

    def _require_identity(self) -> None:
        if self.identity is None:
            raise FinanceError("No user is signed in")

    def _publish(self) -> None:
        self.bus.publish(STATE_CHANGED, {
            "identity": self.identity,
            "record": self.state.to_record(),
        })

    def _mutate(self, func, *args, **kwargs):
        self._require_identity()
        with self._lock:
            result = func(self.state, *args, **kwargs)
            self._publish()
        return result

    def save(self) -> None:
        """Queue a write of the current state, e.g. after an earlier write failed."""
        self._mutate(lambda state: None)

    def flush(self) -> None:
        self.writer.flush()

    def run_recurring(self) -> List[Transaction]:
        self._require_identity()
        with self._lock:
            created = recurring.process_recurring(self.state, self.clock())
            if created:
                self._publish()
        return created

    # ===== TRANSACTIONS =====
    def add_transaction(self, amount, t_type, t_date, category, desc=""):
        return self._mutate(logic.add_transaction, amount, t_type, t_date, category, desc)

    def update_transaction(self, transaction_id, amount, t_type, t_date, category, desc=""):
        return self._mutate(logic.update_transaction, transaction_id, amount, t_type, t_date, category, desc)

    def delete_transaction(self, transaction_id):
        return self._mutate(logic.delete_transaction, transaction_id)

    def get_filtered(self, options: Optional[FilterOptions] = None) -> List[Transaction]:
        with self._lock:
            return logic.filter_transactions(self.state, options)

    # ===== CATEGORIES =====
    def add_category(self, name, color):
        return self._mutate(logic.add_category, name, color)

    def update_category(self, category_id, name, color):
        return self._mutate(logic.update_category, category_id, name, color)

    def delete_category(self, category_id):
        return self._mutate(logic.delete_category, category_id)

    # ===== BUDGETS =====
    def set_budget(self, category_name, limit):
        return self._mutate(logic.set_budget, category_name, limit)

    def remove_budget(self, category_name):
        return self._mutate(logic.remove_budget, category_name)

    def get_budget(self, category_name) -> Optional[float]:
        with self._lock:
            return logic.get_budget(self.state, category_name)

    def get_category_usage(self, category_name) -> float:
        with self._lock:
            return logic.get_category_usage(self.state, category_name)

    def is_over_budget(self, category_name) -> bool:
        with self._lock:
            return logic.is_over_budget(self.state, category_name)

    def budget_status(self) -> Dict[str, dict]:
        with self._lock:
            return logic.budget_status(self.state)

    # ===== SAVINGS GOALS =====
    def set_goal(self, name, target):
        return self._mutate(logic.set_goal, name, target)

    def deposit(self, name, amount):
        return self._mutate(logic.deposit, name, amount)

    def remove_goal(self, name):
        return self._mutate(logic.remove_goal, name)

    def get_progress(self, name) -> float:
        with self._lock:
            return logic.get_progress(self.state, name)

    # ===== RECURRING =====
    def add_recurring(self, amount, t_type, category, frequency, next_date, desc=""):
        return self._mutate(logic.add_recurring, amount, t_type, category, frequency, next_date, desc)

    def update_recurring(self, recurring_id, amount, t_type, category, frequency, next_date, desc=""):
        return self._mutate(logic.update_recurring, recurring_id, amount, t_type, category,
                            frequency, next_date, desc)

    def delete_recurring(self, recurring_id):
        return self._mutate(logic.delete_recurring, recurring_id)

    # ===== INSIGHTS =====
    def get_suggestions(self) -> List[str]:
        with self._lock:
            return insights.get_suggestions(self.state)

    def predict_expenses(self) -> Dict[str, int]:
        with self._lock:
            return insights.predict_expenses(self.state, self.clock())

    def summary(self, options: Optional[FilterOptions] = None) -> Dict[str, float]:
        return insights.summarize(self.get_filtered(options))

    def category_totals(self, options: Optional[FilterOptions] = None) -> Dict[str, float]:
        with self._lock:
            return insights.category_totals(self.state, logic.filter_transactions(self.state, options))

    def monthly_balance_trend(self, options: Optional[FilterOptions] = None):
        return insights.monthly_balance_trend(self.get_filtered(options))

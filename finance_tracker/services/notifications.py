"""
Notification Service

In-process observer for domain events (new transactions, budget alerts, goal
completion). One instance lives on the application state; callers publish
through it and subscribers are invoked synchronously. Each user keeps a
history of the newest notifications with read/unread state.
"""
import itertools
import threading
from collections import deque
from decimal import Decimal
from typing import Callable, Deque, Dict, List, Optional, Any

from finance_tracker.db.core import NotFoundError, TransactionType
from finance_tracker.models.notification import Notification
from finance_tracker.logging_config import get_logger

logger = get_logger(__name__)

HISTORY_LIMIT = 50

Subscriber = Callable[[Notification], None]


def _format_amount(amount) -> str:
    return f"${Decimal(str(amount)):,.2f}"


class NotificationService:

    def __init__(self, history_limit: int = HISTORY_LIMIT):
        self.history_limit = history_limit
        self._subscribers: List[Subscriber] = []
        self._history: Dict[int, Deque[Notification]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    # ===== OBSERVER =====

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that removes it again."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, user_id: int, title: str, body: str, type: str = "info",
                tag: Optional[str] = None, data: Optional[Dict[str, Any]] = None) -> Notification:
        with self._lock:
            notification = Notification(
                id=next(self._ids),
                user_id=user_id,
                title=title,
                body=body,
                type=type,
                tag=tag,
                data=data or {}
            )
            history = self._history.setdefault(user_id, deque(maxlen=self.history_limit))
            history.appendleft(notification)
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(notification)
            except Exception:
                logger.exception(f"Notification subscriber {callback!r} failed for notification {notification.id}")

        logger.debug(f"Published '{notification.tag}' notification {notification.id} to user {user_id}")
        return notification

    # ===== HISTORY =====

    def history(self, user_id: int) -> List[Notification]:
        """Newest first"""
        with self._lock:
            return list(self._history.get(user_id, ()))

    def unread_count(self, user_id: int) -> int:
        with self._lock:
            return sum(1 for n in self._history.get(user_id, ()) if not n.read)

    def mark_as_read(self, user_id: int, notification_id: int) -> Notification:
        with self._lock:
            for notification in self._history.get(user_id, ()):
                if notification.id == notification_id:
                    notification.read = True
                    return notification
        raise NotFoundError(f"Notification with id {notification_id} not found")

    def mark_all_as_read(self, user_id: int) -> int:
        with self._lock:
            unread = [n for n in self._history.get(user_id, ()) if not n.read]
            for notification in unread:
                notification.read = True
        return len(unread)

    def clear(self, user_id: int) -> None:
        with self._lock:
            self._history.pop(user_id, None)

    # ===== DOMAIN EVENTS =====

    def transaction_added(self, user_id: int, transaction) -> Notification:
        is_income = transaction.type == TransactionType.INCOME
        return self.publish(
            user_id,
            title=f"New {'Income' if is_income else 'Expense'}",
            body=f"{transaction.description}: {_format_amount(transaction.amount)}",
            type="success" if is_income else "info",
            tag="transaction",
            data={"action": "view_transaction", "transaction_id": transaction.id}
        )

    def budget_alert(self, user_id: int, budget, spent, percentage: float) -> Notification:
        return self.publish(
            user_id,
            title=f"Budget Alert: {budget.category}",
            body=(f"You've used {_format_amount(spent)} of {_format_amount(budget.amount)} "
                  f"({round(percentage, 2)}%)"),
            type="error" if percentage >= 100 else "warning",
            tag=f"budget-{budget.category}",
            data={"action": "view_budget", "budget_id": budget.id, "category": budget.category}
        )

    def goal_completed(self, user_id: int, goal) -> Notification:
        return self.publish(
            user_id,
            title=f"Goal Completed: {goal.name}",
            body=f"You reached your target of {_format_amount(goal.target_amount)}",
            type="success",
            tag="goal",
            data={"action": "view_goal", "goal_id": goal.id}
        )

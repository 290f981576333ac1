"""Order notifier registry.

Defaults to the logging notifier; tests install a FakeOrderNotifier with
``set_notifier()``. ``notify_safely`` keeps a failing notifier from breaking
the reconciliation path that called it.
"""

import structlog

from ordering.notifications.log_adapter import LoggingOrderNotifier
from ordering.notifications.port import OrderNotifier

logger = structlog.get_logger(__name__)

_current_notifier: OrderNotifier | None = None


def get_notifier() -> OrderNotifier:
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = LoggingOrderNotifier()
    return _current_notifier


def set_notifier(notifier: OrderNotifier) -> None:
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    global _current_notifier
    _current_notifier = None


def notify_safely(method: str, **kwargs) -> None:
    try:
        getattr(get_notifier(), method)(**kwargs)
    except Exception as exc:
        logger.error("Order notification failed", notification=method, error=str(exc), **kwargs)

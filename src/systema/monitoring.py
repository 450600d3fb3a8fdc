"""Instrumenting the method calls of a component.

Used with the ``monitoring`` plugin, which registers the ``monitoring`` event:

    container.use("monitoring")
    monitor(container, "mailer", lambda event: print(event["method"]), methods=["deliver"])
    container["mailer"].deliver("hello")  # prints "deliver"

Each call publishes a payload with the ``target`` key, the monitored ``object``,
the ``method`` name and its ``args`` and ``kwargs``, once the call returns.
"""

import functools
from typing import Any, Callable, Iterable, Optional

__all__ = ["MonitoringProxy", "monitor", "monitored_methods"]

EVENT = "monitoring"


def monitored_methods(target: Any) -> list[str]:
    """The public methods of ``target``, i.e. callables not starting with an underscore."""
    return [
        name
        for name in dir(target)
        if not name.startswith("_") and callable(getattr(target, name, None))
    ]


class MonitoringProxy:
    """Delegates to ``target``, instrumenting calls to the monitored methods."""

    def __init__(self, target: Any, key: str, notifications, methods: Iterable[str]):
        self.__target__ = target
        self.__key__ = key
        self.__notifications__ = notifications
        self.__monitored_methods__ = frozenset(methods)

    def __getattr__(self, name: str) -> Any:
        attribute = getattr(self.__target__, name)
        if name not in self.__monitored_methods__:
            return attribute

        @functools.wraps(attribute)
        def instrumented(*args, **kwargs):
            result = attribute(*args, **kwargs)
            self.__notifications__.instrument(
                EVENT,
                target=self.__key__,
                object=self.__target__,
                method=name,
                args=args,
                kwargs=kwargs,
            )
            return result

        return instrumented

    def __repr__(self):
        return f"<MonitoringProxy {self.__key__!r} {self.__target__!r}>"


def monitor(
    container,
    key: Any,
    callback: Optional[Callable[[dict[str, Any]], Any]] = None,
    methods: Optional[Iterable[str]] = None,
):
    """Wrap the component under ``key`` so calls to ``methods`` are instrumented.

    Without ``methods``, every public method of the resolved component is
    monitored. ``callback`` is subscribed to the ``monitoring`` event for each
    monitored method of this key.

    Returns the resolved, undecorated component.
    """
    key = str(key)
    notifications = container["notifications"]
    target = container.resolve(key)
    methods = list(methods) if methods else monitored_methods(target)

    if callback is not None:
        for method in methods:
            notifications.subscribe(EVENT, callback, target=key, method=method)

    container.decorate(key, lambda value: MonitoringProxy(value, key, notifications, methods))
    return target

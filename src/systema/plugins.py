"""Container plugins."""

import logging
from typing import Callable, Iterable, Optional

import structlog

from systema import monitoring
from systema.errors import PluginNotFoundError
from systema.notifications import Notifications

__all__ = [
    "Plugin",
    "PluginRegistry",
    "default_plugins",
    "logging_plugin",
    "env_plugin",
    "notifications_plugin",
    "monitoring_plugin",
    "dependency_graph_plugin",
]

Plugin = Callable[..., None]
"""A plugin is a callable receiving the container plus the options given to ``use``."""

LOG_LEVELS = {
    "development": logging.DEBUG,
    "test": logging.DEBUG,
    "production": logging.ERROR,
}


class PluginRegistry:
    """Named plugins available to containers."""

    def __init__(self):
        self._plugins: dict[str, Plugin] = {}

    def register(self, name: str, plugin: Plugin) -> "PluginRegistry":
        self._plugins[name] = plugin
        return self

    def __getitem__(self, name: str) -> Plugin:
        try:
            return self._plugins[name]
        except KeyError:
            raise PluginNotFoundError(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self._plugins


def logging_plugin(container, logger=None, log_levels: Optional[dict[str, int]] = None):
    """Register a ``logger`` component, unless one is registered already.

    Without an explicit ``logger``, a structlog logger named after the container is
    registered, filtering below the level for the container's env.
    """
    if container.registered("logger"):
        return
    if logger is None:
        levels = {**LOG_LEVELS, **(log_levels or {})}
        level = levels.get(container.config.env, logging.ERROR)
        logger = structlog.wrap_logger(
            structlog.PrintLogger(),
            wrapper_class=structlog.make_filtering_bound_logger(level),
            processors=[
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.dev.ConsoleRenderer(colors=False),
            ],
        ).bind(container=container.config.name)
    container.register("logger", logger)


def env_plugin(container, inferrer: Callable[[], str]):
    """Set the container's env from ``inferrer``, before the container is configured."""
    container.config.env = inferrer()


def notifications_plugin(container):
    """Register a ``notifications`` component, unless one is registered already."""
    if not container.registered("notifications"):
        container.register("notifications", Notifications(container.config.name))


def monitoring_plugin(container):
    """Register the ``monitoring`` event; see :func:`systema.monitoring.monitor`."""
    container.use("notifications")
    container["notifications"].register_event(monitoring.EVENT)


def dependency_graph_plugin(container, ignored_dependencies: Iterable[str] = ()):
    """Publish ``registered_dependency`` and ``resolved_dependency`` events.

    ``registered_dependency`` carries the ``key`` and ``item`` of each registration
    not in ``ignored_dependencies``; components are not built to report it.
    ``resolved_dependency`` carries the ``dependency_map`` and ``target_class`` of
    each class or function decorated by the container's injector.
    """
    container.use("notifications")
    notifications = container["notifications"]
    notifications.register_event("registered_dependency")
    notifications.register_event("resolved_dependency")
    ignored = {str(key) for key in ignored_dependencies}

    def registered(container, key):
        if key not in ignored:
            notifications.instrument(
                "registered_dependency", key=key, item=container.registry.item(key)
            )

    def injected(container, target, dependencies):
        notifications.instrument(
            "resolved_dependency", dependency_map=dependencies, target_class=target
        )

    container.after("register", registered)
    container.after("inject", injected)


def default_plugins() -> PluginRegistry:
    return (
        PluginRegistry()
        .register("logging", logging_plugin)
        .register("env", env_plugin)
        .register("notifications", notifications_plugin)
        .register("monitoring", monitoring_plugin)
        .register("dependency_graph", dependency_graph_plugin)
    )

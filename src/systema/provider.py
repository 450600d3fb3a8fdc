"""Providers: components with a prepare/start/stop lifecycle."""

from typing import Any, Callable, Optional, Union

import structlog

from systema.registry import Registry

__all__ = ["Provider"]

logger = structlog.get_logger(__name__)


class Provider:
    """A named provider running the lifecycle steps of its source.

    Steps run at most once each, in the order ``prepare``, ``start``, then
    optionally ``stop``. Starting runs ``prepare`` first if needed; stopping only
    happens once started. Calling a step again, or while any step of this provider
    is running, does nothing.

    After each step, components the source registered in the provider's own
    container are copied into the target container, never replacing components
    already registered there.

    Errors raised by a step propagate unchanged; the statuses recorded before the
    error are kept.

    Attributes:
        name: The provider name; components whose root key equals it trigger the
            provider to start.
        namespace: ``True`` to register the provider's components under its name,
            a string to register them under that namespace, or ``None``.
        statuses: The completed steps, in order.
    """

    def __init__(
        self,
        name: str,
        target_container,
        source_class: type,
        namespace: Union[None, bool, str] = None,
        source_options: Optional[dict[str, Any]] = None,
        configure: Optional[Callable] = None,
    ):
        self.name = name
        self.namespace = namespace
        self.target_container = target_container
        self.statuses: list[str] = []
        self._step_running: Optional[str] = None
        self._registry = Registry()
        self.provider_container = self._build_provider_container()
        self.source = source_class(
            provider_container=self.provider_container,
            target_container=target_container,
            configure=configure,
            **(source_options or {}),
        )

    @property
    def container(self):
        return self.provider_container

    @property
    def target(self):
        return self.target_container

    def prepare(self) -> "Provider":
        return self._run_step("prepare")

    def start(self) -> "Provider":
        self._run_step("prepare")
        return self._run_step("start")

    def stop(self) -> "Provider":
        if not self.started:
            return self
        return self._run_step("stop")

    @property
    def prepared(self) -> bool:
        return "prepare" in self.statuses

    @property
    def started(self) -> bool:
        return "start" in self.statuses

    @property
    def stopped(self) -> bool:
        return "stop" in self.statuses

    @property
    def step_running(self) -> Optional[str]:
        return self._step_running

    def _build_provider_container(self):
        if self.namespace is None:
            return self._registry
        if self.namespace is True:
            return self._registry.namespace(self.name)
        if isinstance(self.namespace, str) and self.namespace:
            return self._registry.namespace(self.namespace)
        raise ValueError(
            f"namespace must be True or a string: {self.namespace!r} given"
        )

    def _run_step(self, step_name: str) -> "Provider":
        if self._step_running or step_name in self.statuses:
            return self

        self._step_running = step_name
        try:
            logger.debug("provider.step_started", provider=self.name, step=step_name)
            self.source.run_callback("before", step_name)
            getattr(self.source, step_name)()
            self.source.run_callback("after", step_name)

            self.statuses.append(step_name)
            self._apply()
        finally:
            self._step_running = None

        logger.debug("provider.step_completed", provider=self.name, step=step_name)
        return self

    def _apply(self):
        for key, item in self._registry.items():
            if self.target_container.registered(key):
                continue
            self.target_container.register_item(key, item.copy())

    def __repr__(self):
        return f"Provider({self.name!r}, statuses={self.statuses!r})"

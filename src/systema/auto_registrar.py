"""Registering every component found in the container's component dirs."""

import structlog

__all__ = ["AutoRegistrar"]

logger = structlog.get_logger(__name__)


class AutoRegistrar:
    """Registers components from component dirs configured with ``auto_register``.

    Components already registered, or whose own ``auto_register`` option (possibly
    set by a magic comment) is false, are skipped.
    """

    def __init__(self, container):
        self.container = container

    def finalize(self):
        for component_dir in self.container.component_dirs():
            if component_dir.auto_register:
                self.call(component_dir)

    def call(self, component_dir):
        for component in component_dir.each_component():
            if not self._register_component(component):
                continue
            self.container.register(
                component.key, factory=component.instance, memoize=component.memoize
            )
            logger.debug("component.auto_registered", key=component.key)

    def _register_component(self, component) -> bool:
        return not self.container.registered(component.key) and component.auto_register

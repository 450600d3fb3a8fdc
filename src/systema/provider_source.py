"""Provider sources: the behaviour behind a provider's lifecycle steps."""

import re
from collections import defaultdict
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, create_model

__all__ = ["SourceSettings", "ProviderSource", "SourceDSL", "STEPS"]

STEPS = ("prepare", "start", "stop")


class SourceSettings(BaseModel):
    """Base for the settings a provider source declares.

    Assignments are validated, so configuring a source with a bad value fails fast.
    """

    model_config = ConfigDict(validate_assignment=True, arbitrary_types_allowed=True)


class ProviderSource:
    """Implements the ``prepare``, ``start`` and ``stop`` steps of a provider.

    Subclass it and override the steps you need. Inside a step, ``register`` adds
    components to the provider's own container; they are copied into the target
    container after each step. ``target`` gives access to the target container,
    e.g. to resolve components the provider depends on.

    Example:
        class Database(ProviderSource):
            class Settings(SourceSettings):
                url: str = "sqlite://"

            def prepare(self):
                self.register("db.engine", create_engine(self.config.url))

            def start(self):
                self["db.engine"].connect()

    Settings declared on the nested ``Settings`` model are available as
    ``self.config``.
    """

    Settings: type[SourceSettings] = SourceSettings
    source_name: Optional[str] = None
    source_group: Optional[str] = None

    def __init__(self, provider_container, target_container, configure: Optional[Callable] = None):
        self.callbacks: dict[str, dict[str, list[Callable]]] = {
            "before": defaultdict(list),
            "after": defaultdict(list),
        }
        self.provider_container = provider_container
        self.target_container = target_container
        self.config = self.Settings()
        if configure is not None:
            configure(self)

    @classmethod
    def for_(
        cls,
        name: str,
        group: Optional[str] = None,
        superclass: Optional[type["ProviderSource"]] = None,
        block: Optional[Callable[["SourceDSL"], Any]] = None,
    ) -> type["ProviderSource"]:
        """Build a source class, defining its steps with ``block``.

        ``block`` receives a :class:`SourceDSL` for the new class:

            def block(provider):
                provider.setting("level", default="info")

                @provider.start
                def start(source):
                    source.register("logger", make_logger(source.config.level))
        """
        superclass = superclass or cls
        label = f"{group}->{name}" if group else name
        source_class = type(
            f"{superclass.__name__}[{label}]",
            (superclass,),
            {"source_name": name, "source_group": group},
        )
        if block is not None:
            block(SourceDSL(source_class))
        return source_class

    @property
    def container(self):
        return self.provider_container

    @property
    def target(self):
        return self.target_container

    def prepare(self):
        pass

    def start(self):
        pass

    def stop(self):
        pass

    def before(self, step_name: str, callback: Callable) -> "ProviderSource":
        self.callbacks["before"][step_name].append(callback)
        return self

    def after(self, step_name: str, callback: Callable) -> "ProviderSource":
        self.callbacks["after"][step_name].append(callback)
        return self

    def run_callback(self, hook: str, step_name: str):
        for callback in self.callbacks[hook][step_name]:
            callback(self)

    def register(self, key: Any, value: Any = ..., **kwargs):
        if value is ...:
            return self.provider_container.register(key, **kwargs)
        return self.provider_container.register(key, value, **kwargs)

    def resolve(self, key: Any) -> Any:
        return self.provider_container.resolve(key)

    def __getitem__(self, key: Any) -> Any:
        return self.provider_container.resolve(key)

    def __repr__(self):
        return f"<{type(self).__name__} config={self.config!r}>"


class SourceDSL:
    """Defines the settings and steps of a source class built by :meth:`ProviderSource.for_`."""

    def __init__(self, source_class: type[ProviderSource]):
        self.source_class = source_class

    def setting(self, name: str, default: Any = None, annotation: Any = Any) -> "SourceDSL":
        self.source_class.Settings = create_model(
            _settings_model_name(self.source_class),
            __base__=self.source_class.Settings,
            **{name: (annotation, default)},
        )
        return self

    def prepare(self, fn: Callable) -> Callable:
        return self._define_step("prepare", fn)

    def start(self, fn: Callable) -> Callable:
        return self._define_step("start", fn)

    def stop(self, fn: Callable) -> Callable:
        return self._define_step("stop", fn)

    def _define_step(self, step_name: str, fn: Callable) -> Callable:
        setattr(self.source_class, step_name, fn)
        return fn


def _settings_model_name(source_class: type) -> str:
    # generated class names such as "ProviderSource[db]" are not valid model names
    return re.sub(r"\W+", "_", source_class.__name__).strip("_") + "Settings"

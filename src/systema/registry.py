"""The key/value registry containers are built on.

A registry maps string keys to :class:`Item` instances. An item wraps either a
plain value or a factory; factories are called on every resolution unless the
item is memoized, in which case the first result is cached.
"""

import inspect
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from systema.errors import (
    ComponentNotFoundError,
    ContainerAlreadyFinalizedError,
    ItemAlreadyRegisteredError,
)
from systema.identifier import KEY_SEPARATOR

__all__ = ["UNSET", "Item", "Registry", "NamespacedRegistry", "inferred_name"]


class _Unset:
    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET: Any = _Unset()
"""Sentinel for "argument not given", distinct from ``None``."""


class Item:
    """A registered value or factory, plus its registration options.

    Attributes:
        value: The registered value, or ``UNSET`` for factory items.
        factory: A zero-argument callable producing the value, or ``None``.
        memoize: Whether the factory result is cached after the first call.
        options: Any further options given at registration (e.g. ``imported``).
    """

    __slots__ = ("value", "factory", "memoize", "options", "_memoized")

    def __init__(
        self,
        value: Any = UNSET,
        factory: Optional[Callable[[], Any]] = None,
        memoize: bool = False,
        **options,
    ):
        if (value is UNSET) == (factory is None):
            raise ValueError("Exactly one of a value or a factory must be given")
        if memoize and factory is None:
            raise ValueError("Only factories can be memoized")
        self.value = value
        self.factory = factory
        self.memoize = memoize
        self.options = options
        self._memoized = UNSET

    @property
    def callable(self) -> bool:
        return self.factory is not None

    @property
    def imported(self) -> bool:
        return bool(self.options.get("imported"))

    @property
    def resolved(self) -> bool:
        """True once a memoized factory has produced its value."""
        return self._memoized is not UNSET

    def call(self) -> Any:
        if self.factory is None:
            return self.value
        if not self.memoize:
            return self.factory()
        if self._memoized is UNSET:
            self._memoized = self.factory()
        return self._memoized

    def copy(self, **options) -> "Item":
        """Return an unresolved copy of this item with ``options`` merged in."""
        return Item(
            self.value,
            self.factory,
            self.memoize,
            **{**self.options, **options},
        )

    def __repr__(self):
        target = f"factory={self.factory!r}" if self.callable else f"value={self.value!r}"
        return f"Item({target}, memoize={self.memoize}, options={self.options})"


def inferred_name(target: Any) -> str:
    """Derive a key from a function or class name, removing any 'make_' prefix.

    Example:
        >>> inferred_name(make_database)  # Returns "database"
        >>> inferred_name(Database)       # Returns "Database"
    """
    if inspect.isclass(target):
        return target.__name__
    if target.__name__.startswith("make_"):
        return target.__name__[5:]
    return target.__name__


class Registry:
    """A flat mapping of keys to registered items."""

    def __init__(self):
        self._items: dict[str, Item] = {}
        self._frozen = False
        self._stubs: Optional[dict[str, Item]] = None

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "Registry":
        self._frozen = True
        return self

    def register(
        self,
        key: Any,
        value: Any = UNSET,
        *,
        factory: Optional[Callable[[], Any]] = None,
        memoize: bool = False,
        **options,
    ) -> "Registry":
        """Register a value, or a factory called on resolution.

        Re-registering a key replaces its item, unless the existing item is memoized
        and has already been resolved.

        Raises:
            ValueError: If neither or both of ``value`` and ``factory`` are given.
            ItemAlreadyRegisteredError: If replacing a resolved memoized item.
            ContainerAlreadyFinalizedError: If the registry is frozen.
        """
        return self.register_item(key, Item(value, factory, memoize, **options))

    def register_item(self, key: Any, item: Item) -> "Registry":
        if self._frozen:
            raise ContainerAlreadyFinalizedError(
                f"Cannot register {str(key)!r}: container is already finalized"
            )
        key = str(key)
        existing = self._items.get(key)
        if existing is not None and existing.memoize and existing.resolved:
            raise ItemAlreadyRegisteredError(key)
        self._items[key] = item
        return self

    def provides(self, key: Optional[str] = None, memoize: bool = False) -> Callable:
        """Decorator registering a function or class as a factory.

        Example:
            @registry.provides(memoize=True)
            def make_database() -> Database:
                return Database()

            registry["database"]
        """

        def decorator(target):
            self.register(key or inferred_name(target), factory=target, memoize=memoize)
            return target

        return decorator

    def decorate(self, key: Any, decorator: Callable[[Any], Any]) -> "Registry":
        """Replace the item under ``key`` with one resolving to ``decorator(value)``.

        Factory items stay factories, keeping their memoize option; plain values
        are decorated once. Resolved memoized items can be decorated too.

        Raises:
            ComponentNotFoundError: If nothing is registered under ``key``.
            ContainerAlreadyFinalizedError: If the registry is frozen.
        """
        key = str(key)
        if self._frozen:
            raise ContainerAlreadyFinalizedError(
                f"Cannot decorate {key!r}: container is already finalized"
            )
        item = self.item(key)
        if item.callable:
            decorated = Item(
                factory=lambda: decorator(item.call()), memoize=item.memoize, **item.options
            )
        else:
            decorated = Item(decorator(item.value), **item.options)
        self._items[key] = decorated
        return self

    def resolve(self, key: Any, default: Any = UNSET) -> Any:
        """Return the value registered under ``key``.

        Raises:
            ComponentNotFoundError: If nothing is registered and no default is given.
        """
        key = str(key)
        item = self._lookup(key)
        if item is None:
            if default is not UNSET:
                return default
            raise ComponentNotFoundError(key)
        return item.call()

    def __getitem__(self, key: Any) -> Any:
        return self.resolve(key)

    def registered(self, key: Any) -> bool:
        return self._lookup(str(key)) is not None

    def item(self, key: Any) -> Item:
        item = self._lookup(str(key))
        if item is None:
            raise ComponentNotFoundError(str(key))
        return item

    def keys(self) -> list[str]:
        return list(self._items)

    def items(self) -> Iterator[tuple[str, Item]]:
        return iter(list(self._items.items()))

    def __len__(self):
        return len(self._items)

    def merge(
        self,
        other: "Registry",
        namespace: Optional[str] = None,
        on_conflict: Optional[Callable[[str, Item, Item], Item]] = None,
    ) -> "Registry":
        """Copy every item of ``other`` into this registry.

        Keys are prefixed with ``namespace`` when given. When a key already exists,
        ``on_conflict(key, old_item, new_item)`` picks the item to keep; without it
        the new item replaces the old one.
        """
        for key, item in other.items():
            if namespace:
                key = f"{namespace}{KEY_SEPARATOR}{key}"
            existing = self._items.get(key)
            if existing is not None and on_conflict is not None:
                item = on_conflict(key, existing, item)
            self._items[key] = item
        return self

    def namespace(self, namespace: str) -> "NamespacedRegistry":
        return NamespacedRegistry(self, namespace)

    def enable_stubs(self) -> "Registry":
        """Allow :meth:`stub` to override registered items, even once frozen."""
        if self._stubs is None:
            self._stubs = {}
        return self

    def stub(self, key: Any, value: Any):
        """Override ``key`` with ``value`` until unstubbed.

        The returned object can also be used as a context manager, which removes
        the stub on exit.
        """
        if self._stubs is None:
            raise RuntimeError("Stubs are not enabled; call enable_stubs() first")
        key = str(key)
        if not self.registered(key):
            raise ComponentNotFoundError(key)
        self._stubs[key] = Item(value)
        return self._stub_context(key)

    def unstub(self, *keys: Any) -> "Registry":
        if self._stubs:
            for key in keys or list(self._stubs):
                self._stubs.pop(str(key), None)
        return self

    @contextmanager
    def _stub_context(self, key: str):
        try:
            yield self
        finally:
            self.unstub(key)

    def _lookup(self, key: str) -> Optional[Item]:
        if self._stubs and key in self._stubs:
            return self._stubs[key]
        return self._items.get(key)


class NamespacedRegistry:
    """A view of a registry which prefixes the keys it registers.

    Lookups are not prefixed: keys returned by :meth:`keys` are the full keys.
    """

    def __init__(self, registry: Registry, namespace: str):
        self.registry = registry
        self.prefix = str(namespace)

    def register(self, key: Any, value: Any = UNSET, **kwargs) -> "NamespacedRegistry":
        self.registry.register(self._prefixed(key), value, **kwargs)
        return self

    def register_item(self, key: Any, item: Item) -> "NamespacedRegistry":
        self.registry.register_item(self._prefixed(key), item)
        return self

    def namespace(self, namespace: str) -> "NamespacedRegistry":
        return NamespacedRegistry(self.registry, self._prefixed(namespace))

    def resolve(self, key: Any, default: Any = UNSET) -> Any:
        return self.registry.resolve(key, default)

    def __getitem__(self, key: Any) -> Any:
        return self.registry.resolve(key)

    def registered(self, key: Any) -> bool:
        return self.registry.registered(key)

    def item(self, key: Any) -> Item:
        return self.registry.item(key)

    def keys(self) -> list[str]:
        return self.registry.keys()

    def items(self) -> Iterator[tuple[str, Item]]:
        return self.registry.items()

    def _prefixed(self, key: Any) -> str:
        return f"{self.prefix}{KEY_SEPARATOR}{key}"

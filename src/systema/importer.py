"""Importing components from other containers under a namespace."""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

import structlog

from systema.registry import UNSET, Item, Registry

__all__ = ["ImportItem", "Importer"]

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ImportItem:
    """A container registered for import.

    Attributes:
        namespace: The key namespace imported components are placed under, or
            ``None`` to import them without a namespace.
        container: The container to import from.
        import_keys: The keys to import, or ``None`` for everything the container
            exports.
    """

    namespace: Optional[str]
    container: Any
    import_keys: Optional[tuple[str, ...]]


class Importer:
    """Merges registrations of other containers into the container.

    Items already registered in the importing container always win over imported
    ones, so an application can override an imported component by registering its
    own version. Items a source container has itself imported are only passed on
    when that container declares ``exports``.
    """

    def __init__(self, container):
        self.container = container
        self.registry: dict[Optional[str], ImportItem] = {}

    def register(self, namespace: Optional[str], container, keys: Optional[Iterable[str]] = None):
        namespace = _namespace_key(namespace)
        self.registry[namespace] = ImportItem(
            namespace=namespace,
            container=container,
            import_keys=tuple(str(key) for key in keys) if keys is not None else None,
        )

    def __getitem__(self, namespace: Optional[str]) -> ImportItem:
        return self.registry[_namespace_key(namespace)]

    def namespace_registered(self, namespace: Optional[str]) -> bool:
        return _namespace_key(namespace) in self.registry

    def finalize(self) -> "Importer":
        for namespace in list(self.registry):
            self.import_namespace(namespace)
        return self

    def import_namespace(self, namespace: Optional[str], keys: Any = UNSET) -> "Importer":
        """Import the keys of the container registered under ``namespace``.

        ``keys`` narrows the import; without it, the keys given at registration
        are used, and without those, everything the container exports.
        """
        item = self[namespace]
        if keys is UNSET:
            keys = item.import_keys

        if keys is not None:
            self._import_keys(item.container, item.namespace, self._keys_to_import(keys, item))
        else:
            self._import_all(item.container, item.namespace)
        return self

    def _keys_to_import(self, keys: Iterable[str], item: ImportItem) -> list[str]:
        keys = [str(key) for key in keys]
        if item.import_keys is not None:
            keys = [key for key in keys if key in item.import_keys]
        exports = item.container.exports
        if exports is not None:
            keys = [key for key in keys if key in exports]
        return keys

    def _import_keys(self, other, namespace: Optional[str], keys: list[str]):
        self._merge(self._build_merge_registry(other, keys), namespace)

    def _import_all(self, other, namespace: Optional[str]):
        if other.exports is not None:
            merge_registry = self._build_merge_registry(other, other.exports)
        else:
            merge_registry = self._build_merge_registry(other.finalize(), other.keys())
        self._merge(merge_registry, namespace)

    def _merge(self, merge_registry: Registry, namespace: Optional[str]):
        self.container.merge(
            merge_registry,
            namespace=namespace,
            on_conflict=lambda _key, old_item, new_item: old_item or new_item,
        )
        logger.debug("container.imported", namespace=namespace, keys=merge_registry.keys())

    def _build_merge_registry(self, other, keys: Iterable[str]) -> Registry:
        merge_registry = Registry()
        for key in keys:
            if not other.has(key):
                continue

            item: Item = other.registry.item(key)
            if item.imported and other.exports is None:
                continue

            merge_registry.register_item(key, item.copy(imported=True))
        return merge_registry


def _namespace_key(namespace) -> Optional[str]:
    return None if namespace is None else str(namespace)

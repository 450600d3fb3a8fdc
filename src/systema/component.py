"""Component models: directly loadable components and indirect placeholders."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from systema.identifier import KEY_SEPARATOR, PATH_SEPARATOR, Identifier
from systema.inflector import Inflector
from systema.loader import Loader

__all__ = ["Component", "IndirectComponent", "AnyComponent", "parse_magic_comments"]


@dataclass(frozen=True)
class Component:
    """A component backed by a source file within a component dir.

    Attributes:
        identifier: The component's identifier.
        file_path: Path of the component's source file.
        namespace: The :class:`~systema.config.Namespace` the file was found under.
        options: Loading options: ``auto_register``, ``memoize``, ``loader``,
            ``instance`` and ``inflector``, including magic comment overrides.
    """

    identifier: Identifier
    file_path: Path
    namespace: Any
    options: dict[str, Any] = field(default_factory=dict, compare=False)

    loadable = True

    @property
    def key(self) -> str:
        return self.identifier.key

    @property
    def root_key(self) -> str:
        return self.identifier.root_key

    @property
    def loader(self):
        return self.options.get("loader") or Loader

    @property
    def inflector(self) -> Inflector:
        return self.options.get("inflector") or Inflector()

    @property
    def auto_register(self) -> bool:
        return self._callable_option(self.options.get("auto_register", True))

    @property
    def memoize(self) -> bool:
        return self._callable_option(self.options.get("memoize", False))

    @property
    def require_path(self) -> str:
        """The path of the source file relative to the component dir, without extension.

        Example:
            component.key           # "articles.create"
            component.require_path  # "admin/articles/create" for an "admin" path namespace
        """
        if self.namespace.path:
            return f"{self.namespace.path}{PATH_SEPARATOR}{self._path_in_namespace}"
        return self._path_in_namespace

    @property
    def const_path(self) -> str:
        """Like :attr:`require_path`, but prefixed by the namespace's ``const``."""
        const = self.namespace.const
        if const:
            const = const.replace(KEY_SEPARATOR, PATH_SEPARATOR)
            return f"{const}{PATH_SEPARATOR}{self._path_in_namespace}"
        return self._path_in_namespace

    @property
    def module_name(self) -> str:
        return self.const_path.replace(PATH_SEPARATOR, ".")

    @property
    def class_name(self) -> str:
        return self.inflector.camelize(self.identifier.segments[-1])

    def instance(self, *args, **kwargs) -> Any:
        """Build the component's instance, via the ``instance`` option or the loader."""
        factory = self.options.get("instance")
        if factory is not None:
            instance = factory(self, *args, **kwargs)
            if instance is not None:
                return instance
        return self.loader.call(self, *args, **kwargs)

    @property
    def _path_in_namespace(self) -> str:
        identifier = self.identifier
        if self.namespace.key:
            identifier = identifier.namespaced(from_=self.namespace.key, to=None)
        return identifier.key_with_separator(PATH_SEPARATOR)

    def _callable_option(self, value) -> bool:
        if callable(value):
            return bool(value(self))
        return bool(value)


@dataclass(frozen=True)
class IndirectComponent:
    """A component with no source file in any component dir.

    It may still be loaded through a registration manifest or an imported container.
    """

    identifier: Identifier

    loadable = False

    @property
    def key(self) -> str:
        return self.identifier.key

    @property
    def root_key(self) -> str:
        return self.identifier.root_key


AnyComponent = Union[Component, IndirectComponent]

_VALID_LINE = re.compile(r"^(#.*)?$")
_MAGIC_COMMENT = re.compile(r"^#\s+(?P<key>[A-Za-z][A-Za-z0-9_]+):\s+(?P<value>.+?)$")
_COERCIONS = {"true": True, "false": False}


def parse_magic_comments(file_path: Union[str, Path]) -> dict[str, Any]:
    """Read ``# option: value`` lines from the top of a source file.

    Parsing stops at the first line that is neither blank nor a comment. The values
    ``true`` and ``false`` are coerced to booleans; anything else stays a string.

    Example:
        # auto_register: false
        # memoize: true
        class Thing: ...

        parse_magic_comments("thing.py")  # {"auto_register": False, "memoize": True}
    """
    options: dict[str, Any] = {}
    with open(file_path, encoding="utf-8") as source:
        for line in source:
            line = line.rstrip("\r\n")
            if not _VALID_LINE.match(line.strip()):
                break
            match = _MAGIC_COMMENT.match(line)
            if match:
                value = match.group("value")
                options[match.group("key")] = _COERCIONS.get(value, value)
    return options

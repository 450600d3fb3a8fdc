"""Component identifiers and their namespace-segment algebra."""

import re
from typing import Optional

__all__ = ["Identifier", "KEY_SEPARATOR", "PATH_SEPARATOR"]

KEY_SEPARATOR = "."
PATH_SEPARATOR = "/"


class Identifier:
    """An identifier representing a component to be registered.

    Components are registered in the container under plain string keys such as
    ``"articles.operations.create"``. The identifier wraps that key and offers
    operations working on whole dot-separated segments, never on substrings
    that would split a segment.

    Example:
        >>> identifier = Identifier("articles.operations.create")
        >>> identifier.root_key
        'articles'
        >>> identifier.start_with("articles")
        True
        >>> identifier.start_with("article")
        False
        >>> identifier.namespaced(from_="articles", to="posts").key
        'posts.operations.create'
    """

    __slots__ = ("_key",)

    def __init__(self, key):
        object.__setattr__(self, "_key", str(key))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def key(self) -> str:
        return self._key

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self._key.split(KEY_SEPARATOR))

    @property
    def root_key(self) -> str:
        """The first segment of the key."""
        return self.segments[0]

    def start_with(self, leading_segments: Optional[str]) -> bool:
        """True if ``leading_segments`` are the leading whole segments of the key.

        Also true for ``None`` or an empty string.
        """
        if not leading_segments:
            return True
        return (
            self._key.startswith(f"{leading_segments}{KEY_SEPARATOR}")
            or self._key == leading_segments
        )

    def end_with(self, trailing_segments: Optional[str]) -> bool:
        """True if ``trailing_segments`` are the trailing whole segments of the key.

        Also true for ``None`` or an empty string.
        """
        if not trailing_segments:
            return True
        return (
            self._key.endswith(f"{KEY_SEPARATOR}{trailing_segments}")
            or self._key == trailing_segments
        )

    def include(self, segments: Optional[str]) -> bool:
        """True if ``segments`` match one or more whole segments within the key."""
        if not segments:
            return False
        sep = re.escape(KEY_SEPARATOR)
        return re.search(rf"(^|{sep}){re.escape(segments)}($|{sep})", self._key) is not None

    def key_with_separator(self, separator: str) -> str:
        return separator.join(self.segments)

    def namespaced(self, *, from_: Optional[str], to: Optional[str]) -> "Identifier":
        """Return a copy with the leading ``from_`` namespace replaced by ``to``.

        ``from_=None`` adds ``to`` as a new leading namespace; ``to=None`` removes
        ``from_``. When ``from_`` does not lead the key, ``self`` is returned.

        Example:
            >>> Identifier("articles.create").namespaced(from_="articles", to=None).key
            'create'
            >>> Identifier("articles.create").namespaced(from_=None, to="admin").key
            'admin.articles.create'
        """
        if from_ == to:
            return self

        separated_to = f"{to}{KEY_SEPARATOR}" if to else ""

        if from_ is None:
            new_key = f"{separated_to}{self._key}"
        else:
            prefix = f"{from_}{KEY_SEPARATOR}"
            if not self._key.startswith(prefix):
                return self
            new_key = separated_to + self._key[len(prefix):]

        if new_key == self._key:
            return self
        return Identifier(new_key)

    def __str__(self):
        return self._key

    def __repr__(self):
        return f"Identifier({self._key!r})"

    def __eq__(self, other):
        if isinstance(other, Identifier):
            return self._key == other._key
        return NotImplemented

    def __hash__(self):
        return hash(self._key)

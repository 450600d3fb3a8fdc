"""Injecting container components into constructors and functions."""

import functools
import inspect
from typing import Callable

from systema.identifier import Identifier

__all__ = ["Injector"]


class Injector:
    """Builds decorators that fill missing keyword arguments from a container.

    Dependencies are named by key; the argument name is the key's last segment
    unless given as an alias:

        inject = container.injector()

        @inject("articles.repo", mailer="notifications.mailer")
        class CreateArticle:
            def __init__(self, repo, mailer):
                ...

        CreateArticle()            # repo and mailer resolved from the container
        CreateArticle(repo=fake)   # explicit arguments always win

    Resolution happens at call time, so components load lazily. Decorating runs
    the container's ``inject`` hooks with the target and its dependency map.
    """

    def __init__(self, container):
        self.container = container

    def __call__(self, *keys: str, **aliases: str) -> Callable:
        dependencies = {Identifier(key).segments[-1]: str(key) for key in keys}
        dependencies.update({name: str(key) for name, key in aliases.items()})

        def decorator(target):
            self.container.run_hooks("after_inject", target, dict(dependencies))
            if inspect.isclass(target):
                target.__init__ = self._wrap(target.__init__, dependencies)
                return target
            return self._wrap(target, dependencies)

        return decorator

    def _wrap(self, fn: Callable, dependencies: dict[str, str]) -> Callable:
        signature = inspect.signature(fn)

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            bound = signature.bind_partial(*args, **kwargs)
            for name, key in dependencies.items():
                if name not in bound.arguments:
                    kwargs[name] = self.container.resolve(key)
            return fn(*args, **kwargs)

        wrapper.__dependencies__ = dict(dependencies)
        return wrapper

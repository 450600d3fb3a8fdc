import sys
import token

import pytest

from systema.component import Component
from systema.config import Namespace
from systema.container import Container
from systema.errors import ComponentNotLoadableError
from systema.identifier import Identifier
from systema.inflector import Inflector
from systema.loader import Loader, load_source_file


def make_component(file_path, key, inflector=None) -> Component:
    options = {"inflector": inflector} if inflector else {}
    return Component(Identifier(key), file_path, Namespace.default_root(), options)


def test_instantiates_the_class_named_after_the_last_segment(write):
    path = write(
        "lib/articles/create_article.py",
        """
        class CreateArticle:
            pass
        """,
    )

    instance = Loader.call(make_component(path, "articles.create_article"))

    assert type(instance).__name__ == "CreateArticle"
    assert type(instance).__module__ == "articles.create_article"


def test_modules_are_imported_once(write):
    path = write("lib/counter.py", "class Counter:\n    pass\n")
    component = make_component(path, "counter")

    assert Loader.require(component) is Loader.require(component)


def test_singletons_are_built_with_instance(write):
    path = write(
        "lib/clock.py",
        """
        class Clock:
            _instance = None

            @classmethod
            def instance(cls):
                if cls._instance is None:
                    cls._instance = cls()
                return cls._instance
        """,
    )
    component = make_component(path, "clock")

    assert Loader.call(component) is Loader.call(component)


def test_missing_class_suggests_close_matches(write):
    path = write("lib/publish.py", "class Publsh:\n    pass\n")

    with pytest.raises(ComponentNotLoadableError, match="Looking for publish.Publish") as exc_info:
        Loader.call(make_component(path, "publish"))

    assert "Did you mean?  Publsh" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, AttributeError)


def test_case_mismatch_suggests_an_acronym(write):
    path = write("lib/api_client.py", "class APIClient:\n    pass\n")

    with pytest.raises(ComponentNotLoadableError, match=r"inflector\.acronym\('API'\)"):
        Loader.call(make_component(path, "api_client"))


def test_acronyms_from_the_inflector_are_used(write):
    path = write("lib/api_client.py", "class APIClient:\n    pass\n")
    component = make_component(path, "api_client", inflector=Inflector(acronyms=["API"]))

    assert type(Loader.call(component)).__name__ == "APIClient"


def test_load_source_file_binds_module_globals(write):
    path = write("system/registrations/values.py", "result = seed * 2\n")

    module = load_source_file(path, "_test_registrations.values", seed=21)

    assert module.result == 42


def test_components_named_like_stdlib_modules(container, write):
    write("lib/token.py", "class Token:\n    pass\n")
    write("lib/types.py", "class Types:\n    pass\n")

    assert type(container["token"]).__name__ == "Token"
    assert type(container["types"]).__name__ == "Types"
    assert not hasattr(token, "Token")
    assert sys.modules["token"] is token


def test_same_module_name_under_different_roots(tmp_path, write):
    write("a/lib/repo.py", "class Repo:\n    source = 'a'\n")
    write("b/lib/repo.py", "class Repo:\n    source = 'b'\n")
    containers = {}
    for name in ("a", "b"):
        containers[name] = Container(root=tmp_path / name)
        containers[name].config.component_dirs.add("lib")

    assert containers["a"]["repo"].source == "a"
    assert containers["b"]["repo"].source == "b"
    assert containers["a"]["repo"].source == "a"

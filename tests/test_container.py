import sys

import pytest

from systema.container import Container
from systema.errors import (
    ComponentNotFoundError,
    ComponentNotLoadableError,
    ConfigFrozenError,
    ContainerAlreadyFinalizedError,
    ItemAlreadyRegisteredError,
)
from systema.provider_source import ProviderSource


@pytest.fixture
def articles(write):
    write(
        "lib/articles/create.py",
        """
        class Create:
            def call(self, title):
                return {"title": title}
        """,
    )
    write(
        "lib/articles/publish.py",
        """
        # memoize: true
        class Publish:
            pass
        """,
    )
    write(
        "lib/articles/draft.py",
        """
        # auto_register: false
        class Draft:
            pass
        """,
    )


def test_resolves_a_component_from_its_file(container, articles):
    create = container["articles.create"]

    assert type(create).__name__ == "Create"
    assert type(create).__module__ == "articles.create"
    assert create.call("Hello") == {"title": "Hello"}


def test_components_are_built_on_every_resolution_unless_memoized(container, articles):
    assert container["articles.create"] is not container["articles.create"]
    assert container["articles.publish"] is container["articles.publish"]


def test_missing_component_raises_not_found(container, articles):
    with pytest.raises(ComponentNotFoundError, match="'articles.update'"):
        container["articles.update"]

    assert container.resolve("articles.update", default="fallback") == "fallback"


def test_has_does_not_raise(container, articles):
    assert container.has("articles.create")
    assert "articles.create" in container
    assert "articles.update" not in container


def test_registered_never_loads(container, articles):
    assert not container.registered("articles.create")
    container["articles.create"]
    assert container.registered("articles.create")


def test_auto_register_false_components_are_not_registered(container, articles):
    assert "articles.draft" not in container

    container.finalize()

    assert "articles.draft" not in container.keys()


def test_explicit_registrations(container):
    container.register("url", "sqlite://")

    @container.provides(memoize=True)
    def make_engine():
        return {"url": container["url"]}

    assert container["engine"] == {"url": "sqlite://"}
    assert container["engine"] is container["engine"]


def test_resolved_memoized_component_cannot_be_replaced(container, articles):
    container["articles.publish"]

    with pytest.raises(ItemAlreadyRegisteredError):
        container.register("articles.publish", "other")


def test_finalize_registers_everything_and_freezes(container, articles, write):
    assert container.finalize() is container
    assert container.finalized
    assert sorted(container.keys()) == ["articles.create", "articles.publish"]

    with pytest.raises(ContainerAlreadyFinalizedError):
        container.register("late", 1)

    write("lib/articles/update.py", "class Update:\n    pass\n")
    with pytest.raises(ComponentNotFoundError):
        container["articles.update"]
    assert "articles.update" not in container


def test_finalize_is_idempotent(container, articles):
    calls = []

    container.finalize(lambda c: calls.append(c))
    container.finalize(lambda c: calls.append(c))

    assert calls == [container]


def test_finalize_without_freezing(container, articles):
    container.finalize(freeze=False)

    container.register("late", 1)
    assert container["late"] == 1


def test_hooks(container, articles):
    events = []
    container.before("finalize", lambda c: events.append("before finalize"))
    container.after("finalize", lambda c: events.append("after finalize"))
    container.after("register", lambda c, key: events.append(f"registered {key}"))

    container["articles.create"]
    container.finalize()

    assert events == [
        "registered articles.create",
        "before finalize",
        "registered articles.publish",
        "after finalize",
    ]


def test_configure_freezes_the_config(container, tmp_path):
    container.configure(lambda config: setattr(config, "name", "app"))

    assert container.is_configured
    assert container.config.name == "app"
    assert str(tmp_path / "lib") in sys.path
    with pytest.raises(ConfigFrozenError):
        container.config.name = "other"


def test_configure_as_a_context_manager(tmp_path):
    container = Container(root=tmp_path)

    with container.configure() as config:
        config.component_dirs.add("lib")
        config.component_dirs.add("app", add_to_load_path=False)

    assert container.is_configured
    assert str(tmp_path / "lib") in sys.path
    assert str(tmp_path / "app") not in sys.path


def test_add_to_load_path_keeps_the_given_order(tmp_path):
    container = Container(root=tmp_path)

    container.add_to_load_path("lib", "app")

    assert sys.path[:2] == [str(tmp_path / "lib"), str(tmp_path / "app")]


def test_provider_starts_when_its_key_is_resolved(container):
    starts = []

    @container.register_provider("logger")
    class Logger(ProviderSource):
        def start(self):
            starts.append(self)
            self.register("logger", "the logger")

    assert container["logger"] == "the logger"
    assert container["logger"] == "the logger"
    assert len(starts) == 1
    assert container.providers["logger"].started


def test_provider_starts_for_keys_under_its_name(container, write):
    write(
        "system/providers/db.py",
        """
        from systema.provider_source import ProviderSource

        @container.register_provider("db")
        class Database(ProviderSource):
            def start(self):
                self.register("db.connection", {"url": "sqlite://"})
        """,
    )

    assert container["db.connection"] == {"url": "sqlite://"}


def test_manifest_registrations(container, write):
    write(
        "system/registrations/mailers.py",
        """
        container.register("mailers.welcome", "welcome mailer")
        container.register("mailers.goodbye", "goodbye mailer")
        """,
    )

    assert container["mailers.welcome"] == "welcome mailer"
    assert container.registered("mailers.goodbye")


def test_load_registrations(container, write):
    write("system/registrations/mailers.py", 'container.register("mailers.welcome", "hi")\n')

    container.load_registrations("mailers")

    assert container.registered("mailers.welcome")


def test_custom_instance_factory(tmp_path, write):
    write("lib/greeting.py", "class Greeting:\n    pass\n")
    container = Container(root=tmp_path)
    container.config.component_dirs.add("lib", instance=lambda component: f"custom {component.key}")

    assert container["greeting"] == "custom greeting"


def test_earlier_component_dirs_win(tmp_path, write):
    write("lib/greeting.py", "class Greeting:\n    source = 'lib'\n")
    write("app/greeting.py", "class Greeting:\n    source = 'app'\n")
    container = Container(root=tmp_path)
    container.config.component_dirs.add("app")
    container.config.component_dirs.add("lib")

    assert container["greeting"].source == "app"


def test_stubs(container, articles):
    container.enable_stubs()
    container.finalize()

    with container.stub("articles.create", "stubbed"):
        assert container["articles.create"] == "stubbed"

    assert type(container["articles.create"]).__name__ == "Create"


def test_stub_loads_the_component_first(container, articles):
    container.enable_stubs()

    container.stub("articles.publish", "stubbed")

    assert container["articles.publish"] == "stubbed"
    container.unstub("articles.publish")
    assert type(container["articles.publish"]).__name__ == "Publish"


def test_registration_files_run_once(container, write):
    write(
        "system/registrations/mailers.py",
        'container.register("mailers.welcome", factory=object, memoize=True)\n',
    )
    welcome = container["mailers.welcome"]

    assert not container.has("mailers.missing")
    assert container["mailers.welcome"] is welcome

    container.finalize()

    assert container["mailers.welcome"] is welcome


def test_has_reports_components_whose_class_is_missing(container, write):
    write("lib/articles/archive.py", "class Archiver:\n    pass\n")

    assert container.has("articles.archive")

    with pytest.raises(ComponentNotLoadableError, match="Looking for articles.archive.Archive"):
        container["articles.archive"]

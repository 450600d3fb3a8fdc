import pytest

from systema.container import Container
from systema.errors import ContainerAlreadyFinalizedError


@pytest.fixture
def make_container(tmp_path):
    def make_container(**config_values) -> Container:
        return Container(root=tmp_path, **config_values)

    return make_container


@pytest.fixture
def core(make_container) -> Container:
    core = make_container(name="core")
    core.register("logger", "core logger")
    core.register("mailer", factory=lambda: "core mailer")
    return core


def test_imported_keys_are_namespaced(make_container, core):
    app = make_container()
    assert not app.has("core.logger")

    app.import_from(core, namespace="core")

    assert app.has("core.logger")
    assert app["core.logger"] == "core logger"
    assert app["core.mailer"] == "core mailer"
    assert app.registry.item("core.logger").imported


def test_local_registrations_win(make_container, core):
    app = make_container()
    app.register("core.logger", "app logger")
    app.import_from(core, namespace="core")

    assert app["core.logger"] == "app logger"

    app.finalize()

    assert app["core.logger"] == "app logger"
    assert app["core.mailer"] == "core mailer"


def test_import_without_namespace(make_container, core):
    app = make_container()
    app.import_from(core, namespace=None)

    assert app["logger"] == "core logger"


def test_exports_limit_what_can_be_imported(make_container):
    core = make_container(exports=["logger"])
    core.register("logger", "core logger")
    core.register("secret", "hidden")
    app = make_container()
    app.import_from(core, namespace="core")

    assert "core.secret" not in app

    app.finalize()

    assert app.keys() == ["core.logger"]


def test_import_keys_limit_what_is_imported(make_container, core):
    app = make_container()
    app.import_from(core, namespace="core", keys=["logger"])

    assert "core.mailer" not in app
    assert app["core.logger"] == "core logger"


def test_finalize_imports_everything(make_container, core):
    app = make_container()
    app.import_from(core, namespace="core")

    app.finalize()

    assert sorted(app.keys()) == ["core.logger", "core.mailer"]
    assert core.finalized


def test_import_after_finalize_raises(make_container, core):
    app = make_container().finalize()

    with pytest.raises(ContainerAlreadyFinalizedError):
        app.import_from(core, namespace="core")


def test_transitive_imports_need_exports(make_container):
    base = make_container()
    base.register("clock", "base clock")

    middle = make_container()
    middle.import_from(base, namespace="base")
    app = make_container()
    app.import_from(middle, namespace="middle")

    assert "middle.base.clock" not in app


def test_intermediate_exports_pass_imports_on(make_container):
    base = make_container()
    base.register("clock", "base clock")

    middle = make_container(exports=["base.clock"])
    middle.import_from(base, namespace="base")
    app = make_container()
    app.import_from(middle, namespace="middle")

    assert app["middle.base.clock"] == "base clock"


def test_file_backed_components_from_two_roots(tmp_path, write):
    write("core/lib/repo.py", "class Repo:\n    source = 'core'\n")
    write("app/lib/repo.py", "class Repo:\n    source = 'app'\n")
    core = Container(root=tmp_path / "core")
    core.config.component_dirs.add("lib")
    app = Container(root=tmp_path / "app")
    app.config.component_dirs.add("lib")

    app.import_from(core, namespace="core")

    assert app["repo"].source == "app"
    assert app["core.repo"].source == "core"

    app.finalize()

    assert sorted(app.keys()) == ["core.repo", "repo"]
    assert app["core.repo"].source == "core"

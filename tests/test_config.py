from pathlib import Path

import pytest

from systema.config import ComponentDirs, ContainerConfig, Namespace, Namespaces
from systema.errors import (
    ComponentDirAlreadyAddedError,
    ConfigFrozenError,
    NamespaceAlreadyAddedError,
)
from systema.loader import Loader


def test_namespace_key_defaults_to_the_path_with_dots():
    namespaces = Namespaces()

    namespace = namespaces.add("admin/users")

    assert namespace.key == "admin.users"
    assert namespace.const == "admin/users"
    assert namespace.has_path


def test_namespaces_end_with_a_default_root():
    namespaces = Namespaces()
    namespaces.add("admin", key=None)

    assert [ns.path for ns in namespaces] == ["admin", None]
    assert namespaces.root is None
    assert len(namespaces) == 1


def test_explicit_root_keeps_its_position():
    namespaces = Namespaces()
    namespaces.add_root(key="app")
    namespaces.add("admin")

    assert list(namespaces) == [
        Namespace(None, "app", None),
        Namespace("admin", "admin", "admin"),
    ]


def test_duplicate_namespaces_are_rejected():
    namespaces = Namespaces()
    namespaces.add_root()

    with pytest.raises(NamespaceAlreadyAddedError, match="root path"):
        namespaces.add_root()


def test_component_dir_defaults():
    dirs = ComponentDirs()
    dir = dirs.add("lib")

    assert dir.auto_register is True
    assert dir.memoize is False
    assert dir.loader is Loader
    assert dir.instance is None
    assert dir.add_to_load_path is True


def test_dirs_defaults_apply_unless_set_on_the_dir():
    dirs = ComponentDirs()
    dirs.defaults.memoize = True
    dirs.defaults.namespaces.add("admin")
    dirs.add("lib")
    dirs.add("app", memoize=False)

    assert dirs.dir("lib").memoize is True
    assert dirs.dir("app").memoize is False
    assert dirs.dir("lib").namespaces.paths == ["admin"]


def test_duplicate_component_dirs_are_rejected():
    dirs = ComponentDirs()
    dirs.add("lib")

    with pytest.raises(ComponentDirAlreadyAddedError, match="'lib'"):
        dirs.add("lib")


def test_unknown_dir_settings_are_rejected():
    with pytest.raises(AttributeError, match="colour"):
        ComponentDirs().add("lib", colour="blue")


def test_container_config_defaults(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)
    config = ContainerConfig()

    assert config.env == "development"
    assert config.root == Path.cwd()
    assert config.provider_dirs == ["system/providers"]
    assert config.registrations_dir == "system/registrations"
    assert config.exports is None


def test_env_comes_from_app_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")

    assert ContainerConfig().env == "production"


def test_container_config_values(tmp_path):
    config = ContainerConfig(root=str(tmp_path), exports=("a", "b"))

    assert config.root == tmp_path
    assert config.exports == ["a", "b"]

    with pytest.raises(AttributeError, match="colour"):
        ContainerConfig(colour="blue")


def test_frozen_config_rejects_changes():
    config = ContainerConfig().freeze()

    with pytest.raises(ConfigFrozenError, match="'name'"):
        config.name = "app"

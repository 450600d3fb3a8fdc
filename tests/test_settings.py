import pytest
from pydantic_settings import BaseSettings

from systema.container import Container
from systema.errors import InvalidSettingsError
from systema.settings import dotenv_files


class AppSettings(BaseSettings):
    database_url: str
    debug: bool = False


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


def make_container(root, env="development") -> Container:
    container = Container(root=root, env=env)
    container.register_provider(
        "settings", from_="system", configure=lambda source: source.settings(AppSettings)
    )
    return container


def test_settings_are_loaded_from_dotenv_files(tmp_path, write):
    write(".env", "DATABASE_URL=postgres://localhost/app\nDEBUG=true\n")

    settings = make_container(tmp_path)["settings"]

    assert isinstance(settings, AppSettings)
    assert settings.database_url == "postgres://localhost/app"
    assert settings.debug is True


def test_env_specific_files_take_precedence(tmp_path, write):
    write(".env", "DATABASE_URL=postgres://localhost/app\n")
    write(".env.development", "DATABASE_URL=postgres://localhost/dev\n")
    write(".env.development.local", "DEBUG=true\n")

    settings = make_container(tmp_path)["settings"]

    assert settings.database_url == "postgres://localhost/dev"
    assert settings.debug is True


def test_environment_variables_win(tmp_path, write, monkeypatch):
    write(".env", "DATABASE_URL=postgres://localhost/app\n")
    monkeypatch.setenv("DATABASE_URL", "postgres://elsewhere/app")

    assert make_container(tmp_path)["settings"].database_url == "postgres://elsewhere/app"


def test_local_file_is_skipped_in_test(tmp_path, write):
    write(".env", "DATABASE_URL=postgres://localhost/app\n")
    write(".env.local", "DATABASE_URL=postgres://localhost/mine\n")

    assert make_container(tmp_path, env="test")["settings"].database_url == "postgres://localhost/app"
    assert make_container(tmp_path)["settings"].database_url == "postgres://localhost/mine"


def test_invalid_settings_list_each_field(tmp_path, write):
    write(".env", "DEBUG=sometimes\n")

    with pytest.raises(InvalidSettingsError) as exc_info:
        make_container(tmp_path)["settings"]

    assert set(exc_info.value.errors) == {"database_url", "debug"}
    assert "database_url: Field required" in str(exc_info.value)


def test_settings_class_is_required(tmp_path):
    container = Container(root=tmp_path)
    container.register_provider("settings", from_="system")

    with pytest.raises(ValueError, match="No settings class"):
        container["settings"]


def test_dotenv_files(tmp_path):
    assert [path.name for path in dotenv_files(tmp_path, "production")] == [
        ".env.production.local",
        ".env.local",
        ".env.production",
        ".env",
    ]
    assert [path.name for path in dotenv_files(tmp_path, "test")] == [
        ".env.test.local",
        ".env.test",
        ".env",
    ]

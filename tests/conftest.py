import importlib
import sys
import textwrap
from pathlib import Path

import pytest

from systema.container import Container


@pytest.fixture(autouse=True)
def isolated_imports(tmp_path):
    """Undo sys.path changes and forget modules loaded from the test's tmp_path."""
    saved_path = list(sys.path)
    yield
    sys.path[:] = saved_path
    roots = (str(tmp_path), str(tmp_path.resolve()))
    for name, module in list(sys.modules.items()):
        if (getattr(module, "__file__", None) or "").startswith(roots):
            del sys.modules[name]
    importlib.invalidate_caches()


@pytest.fixture
def write(tmp_path):
    def write(relative_path: str, source: str = "") -> Path:
        path = tmp_path / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
        return path

    return write


@pytest.fixture
def container(tmp_path) -> Container:
    (tmp_path / "lib").mkdir()
    container = Container(root=tmp_path, env="test")
    container.config.component_dirs.add("lib")
    return container

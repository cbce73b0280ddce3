from __future__ import annotations

import sys

import pytest

import prefork
from prefork.core.coordinator import LoadCoordinator
from tests.helpers.fakes import CallRecorder, FakeLoader


@pytest.fixture
def loader():
    return FakeLoader()


@pytest.fixture
def coordinator(loader):
    return LoadCoordinator(loader=loader, forking=False)


@pytest.fixture
def forking_coordinator(loader):
    return LoadCoordinator(loader=loader, forking=True)


@pytest.fixture
def recorder():
    return CallRecorder()


@pytest.fixture
def process_coordinator(loader):
    """
    Installs a fresh process-wide coordinator and restores the previous one.
    """
    c = LoadCoordinator(loader=loader, forking=False)
    previous = prefork.set_coordinator(c)
    yield c
    prefork.set_coordinator(previous)


@pytest.fixture
def module_tree(tmp_path, monkeypatch):
    """
    Writes importable modules under tmp_path and removes them from sys.modules
    afterwards. Call with {"pkg/__init__.py": "", "pkg/mod.py": "X = 1"}.
    """
    created: list[str] = []

    def write(files: dict[str, str]) -> str:
        for rel, body in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(body, encoding="utf-8")
            name = rel[: -len(".py")].replace("/", ".")
            if name.endswith(".__init__"):
                name = name[: -len(".__init__")]
            created.append(name)
        return str(tmp_path)

    monkeypatch.syspath_prepend(str(tmp_path))
    yield write
    for name in created:
        sys.modules.pop(name, None)

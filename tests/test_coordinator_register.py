from __future__ import annotations

import pytest

from prefork.core.coordinator import LoadCoordinator
from prefork.core.errors import LoadError, ValidationError


def test_register_twice_queues_once(coordinator, loader):
    assert coordinator.register("Foo::Bar") is True
    assert coordinator.register("Foo::Bar") is True
    assert coordinator.pending() == {"Foo::Bar": "Foo.Bar"}
    assert loader.calls == []


def test_register_already_loaded_module_is_noop(coordinator, loader):
    loader.loaded.add("Foo.Bar")
    assert coordinator.register("Foo::Bar") is True
    assert coordinator.pending() == {}
    assert loader.calls == []


def test_register_while_forking_loads_immediately(forking_coordinator, loader):
    assert forking_coordinator.register("Foo::Bar") is True
    assert loader.calls == ["Foo.Bar"]
    assert forking_coordinator.pending() == {}


def test_register_while_forking_skips_loaded_module(forking_coordinator, loader):
    loader.loaded.add("Foo.Bar")
    forking_coordinator.register("Foo::Bar")
    assert loader.calls == []


def test_register_while_forking_propagates_load_error(forking_coordinator, loader):
    loader.fail.add("Broken.Mod")
    with pytest.raises(LoadError) as ei:
        forking_coordinator.register("Broken::Mod")
    assert ei.value.module == "Broken::Mod"
    assert ei.value.context["locator"] == "Broken.Mod"
    assert isinstance(ei.value.__cause__, ImportError)
    assert forking_coordinator.pending() == {}


def test_invalid_identifier_leaves_queue_untouched(coordinator, loader):
    coordinator.register("Good")
    with pytest.raises(ValidationError):
        coordinator.register(" bad name!")
    assert coordinator.pending() == {"Good": "Good"}
    assert loader.calls == []


@pytest.mark.parametrize("name", ["", "123Bad"])
def test_register_rejects_bad_names(coordinator, name):
    with pytest.raises(ValidationError):
        coordinator.register(name)


def test_register_accepts_nested_name(coordinator):
    assert coordinator.register("A::B_2") is True
    assert coordinator.pending() == {"A::B_2": "A.B_2"}


def test_register_uses_injected_resolver(loader):
    class PathResolver:
        def resolve(self, identifier):
            return identifier.replace("::", "/") + ".py"

    c = LoadCoordinator(loader=loader, resolver=PathResolver(), forking=False)
    c.register("Foo::Bar")
    assert c.pending() == {"Foo::Bar": "Foo/Bar.py"}
    c.declare_forking()
    assert loader.calls == ["Foo/Bar.py"]


def test_forking_flag_from_environment(loader, monkeypatch):
    monkeypatch.setenv("MOD_PERL", "mod_perl/2.0")
    assert LoadCoordinator(loader=loader).forking is True


def test_forking_flag_defaults_false_without_signal(loader, monkeypatch):
    monkeypatch.delenv("MOD_PERL", raising=False)
    assert LoadCoordinator(loader=loader).forking is False


def test_empty_environment_signal_is_not_forking(loader, monkeypatch):
    monkeypatch.setenv("MOD_PERL", "")
    assert LoadCoordinator(loader=loader).forking is False

import asyncio

import pytest

try:  # Skip test if Gtk/Adw bindings aren't available
    import gi
    gi.require_version('Gtk', '4.0')
    gi.require_version('Adw', '1')
    from gi.repository import Adw, Gtk  # noqa: F401
except Exception:  # pragma: no cover - environment without GI bindings
    pytest.skip("GTK or Adw not available", allow_module_level=True)

from zonedefense import window as window_module
from zonedefense.models import ZoneSnapshot


class DummyWindow:
    instances = []

    def __init__(self, application, connection_id, snapshot, on_choice):
        self.connection_id = connection_id
        self.snapshot = snapshot
        self.on_choice = on_choice
        self.handlers = []
        self.presented = 0
        self.closed = False
        DummyWindow.instances.append(self)

    def connect(self, signal, callback, *args):
        self.handlers.append((signal, callback, args))

    def present(self):
        self.presented += 1

    def close(self):
        self.closed = True
        for signal, callback, args in self.handlers:
            if signal == "close-request":
                callback(self, *args)


@pytest.fixture
def presenter(monkeypatch):
    DummyWindow.instances = []
    monkeypatch.setattr(window_module, "ZoneDefenseWindow", DummyWindow)
    return window_module.PromptPresenter(application=None)


SNAPSHOT = ZoneSnapshot(frozenset({"home", "public"}), "public")


async def _choose(zone):
    return zone


def test_open_presents_one_window_per_connection(presenter):
    closed = []
    presenter.open("wifi-home", "/settings/1", SNAPSHOT, _choose, lambda: closed.append("wifi-home"))
    presenter.open("wifi-home", "/settings/1", SNAPSHOT, _choose, lambda: closed.append("again"))

    assert len(DummyWindow.instances) == 1
    assert DummyWindow.instances[0].presented == 2
    assert presenter.bound_connection_id == "wifi-home"
    assert closed == []


def test_open_for_other_connection_replaces_window(presenter):
    closed = []
    presenter.open("c1", "/settings/1", SNAPSHOT, _choose, lambda: closed.append("c1"))
    presenter.open("c2", "/settings/2", SNAPSHOT, _choose, lambda: closed.append("c2"))

    first, second = DummyWindow.instances
    assert first.closed is True
    assert closed == ["c1"]
    assert presenter.window is second


def test_user_closing_window_reports_dismissal(presenter):
    closed = []
    presenter.open("c1", "/settings/1", SNAPSHOT, _choose, lambda: closed.append("c1"))

    DummyWindow.instances[0].close()

    assert closed == ["c1"]
    assert presenter.window is None
    assert presenter.bound_connection_id is None


def test_close_without_window_is_noop(presenter):
    presenter.close()
    assert presenter.window is None


def test_selected_zone_maps_choice_to_zone():
    snapshot = ZoneSnapshot(frozenset({"home", "public"}), "public", current_zone="home")

    class FakeRow:
        def get_selected(self):
            return 1

    class FakeWindow:
        _choices, _selected = window_module.build_zone_choices(snapshot)
        zone_row = FakeRow()

    assert window_module.ZoneDefenseWindow.selected_zone(FakeWindow()) == "home"


def test_failed_commit_keeps_window_open():
    calls = []

    async def failing_choice(zone):
        raise RuntimeError("NetworkManager refused")

    class FakeButton:
        def set_sensitive(self, value):
            calls.append(("sensitive", value))

    class FakeWindow:
        connection_id = "c1"
        _on_choice = staticmethod(failing_choice)
        choose_button = FakeButton()

        def show_toast(self, message):
            calls.append(("toast", message))

        def close(self):
            calls.append(("close",))

    asyncio.run(window_module.ZoneDefenseWindow._commit(FakeWindow(), "home"))

    assert calls[0][0] == "toast"
    assert "NetworkManager refused" in calls[0][1]
    assert calls[1] == ("sensitive", True)
    assert ("close",) not in calls

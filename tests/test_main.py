import signal
import types

import pytest

try:  # Skip test if Gtk/Adw bindings aren't available
    import gi
    gi.require_version('Gtk', '4.0')
    gi.require_version('Adw', '1')
    gi.require_version('NM', '1.0')
    from gi.repository import Adw, GLib, Gtk  # noqa: F401
    from gi.events import GLibEventLoopPolicy  # noqa: F401
except Exception:  # pragma: no cover - environment without GI bindings
    pytest.skip("GTK, Adw or libnm not available", allow_module_level=True)

from zonedefense import main as main_module
from zonedefense.errors import FATAL_SUFFIX
from zonedefense.main import STARTUP_ERROR_ID, ZoneDefenseApplication, watch_termination_signals
from zonedefense.orchestrator import Orchestrator


class DummyOrchestrator:
    def __init__(self):
        self.is_running = True
        self.causes = []

    def quit(self, cause=None):
        self.causes.append(cause)
        self.is_running = False


def test_termination_signal_goes_through_orchestrator():
    app = types.SimpleNamespace(orchestrator=DummyOrchestrator())

    result = ZoneDefenseApplication._on_termination_signal(app, signal.SIGTERM)

    assert app.orchestrator.causes == [signal.SIGTERM]
    assert result == GLib.SOURCE_CONTINUE


def test_quit_action_goes_through_orchestrator():
    app = types.SimpleNamespace(orchestrator=DummyOrchestrator())

    ZoneDefenseApplication.quit(app)

    assert app.orchestrator.causes == [None]


def test_debug_setting_reapplies_log_level():
    applied = []
    app = types.SimpleNamespace(apply_log_level=lambda: applied.append(True))

    ZoneDefenseApplication._on_config_setting_changed(app, None, 'debug_enabled', True)
    ZoneDefenseApplication._on_config_setting_changed(app, None, 'dbus_timeout_ms', 100)

    assert applied == [True]


def test_signal_sources_are_removed_once_on_quit(monkeypatch):
    added = []
    removed = []

    def fake_unix_signal_add(priority, signum, handler, user_data):
        added.append((signum, handler, user_data))
        return 100 + signum

    monkeypatch.setattr(main_module.GLib, "unix_signal_add", fake_unix_signal_add, raising=False)
    monkeypatch.setattr(main_module.GLib, "source_remove", removed.append, raising=False)

    terminated = []
    orchestrator = Orchestrator(
        store=None,
        zone_lookup=None,
        notifier=None,
        presenter=None,
        terminate=lambda: terminated.append(True),
    )

    def handler(signum):
        orchestrator.quit(signum)

    watch_termination_signals(orchestrator, handler)
    assert [(signum, user_data) for signum, _h, user_data in added] == [
        (signal.SIGINT, signal.SIGINT),
        (signal.SIGTERM, signal.SIGTERM),
    ]

    # Delivering SIGTERM and then SIGINT only tears down once
    added[1][1](signal.SIGTERM)
    added[0][1](signal.SIGINT)

    assert sorted(removed) == sorted([100 + signal.SIGINT, 100 + signal.SIGTERM])
    assert terminated == [True]


def test_signal_registration_failure_is_reported_and_startup_continues(monkeypatch):
    def broken_unix_signal_add(*args):
        raise RuntimeError("signal already handled")

    monkeypatch.setattr(main_module.GLib, "unix_signal_add", broken_unix_signal_add, raising=False)
    reported = []
    orchestrator = types.SimpleNamespace(
        add_subscription=lambda release: None,
        report_unexpected=reported.append,
    )

    watch_termination_signals(orchestrator, lambda signum: None)

    assert len(reported) == 2


def test_setup_failure_sends_fatal_notification(monkeypatch):
    sent = []

    class DummyNotifier:
        def __init__(self, application):
            pass

        def notify(self, notification_id, title, body):
            sent.append((notification_id, title, body))

    def broken_build():
        raise RuntimeError("no system bus")

    monkeypatch.setattr(main_module, "Notifier", DummyNotifier)
    terminated = []
    app = types.SimpleNamespace(
        _started=False,
        _held=False,
        hold=lambda: None,
        build_orchestrator=broken_build,
        _terminate=lambda: terminated.append(True),
    )

    ZoneDefenseApplication.on_activate(app, app)

    assert len(sent) == 1
    notification_id, _title, body = sent[0]
    assert notification_id == STARTUP_ERROR_ID
    assert body == f"no system bus\n\n{FATAL_SUFFIX}"
    assert terminated == [True]

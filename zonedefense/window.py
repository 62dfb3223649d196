import asyncio
import logging
from gettext import gettext as _

from gi.repository import Adw, GLib, Gtk

from .zone_choices import build_zone_choices

logger = logging.getLogger(__name__)


class ZoneDefenseWindow(Adw.ApplicationWindow):
    """Ask which firewall zone a newly seen connection should use."""

    def __init__(self, application, connection_id, snapshot, on_choice):
        super().__init__(application=application)
        self.connection_id = connection_id
        self._on_choice = on_choice
        self._choices, selected = build_zone_choices(snapshot)
        self._commit_task = None

        self.set_title(_("Zone Defense"))
        self.set_default_size(460, -1)
        self.set_resizable(False)

        toolbar_view = Adw.ToolbarView()
        header = Adw.HeaderBar()
        header.set_title_widget(Gtk.Label(label=_("New Network Connection")))
        toolbar_view.add_top_bar(header)

        self._toast_overlay = Adw.ToastOverlay()
        toolbar_view.set_content(self._toast_overlay)
        self.set_content(toolbar_view)

        box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=18)
        box.set_margin_top(18)
        box.set_margin_bottom(18)
        box.set_margin_start(18)
        box.set_margin_end(18)
        self._toast_overlay.set_child(box)

        intro = Gtk.Label()
        intro.set_wrap(True)
        intro.set_xalign(0)
        intro.set_text(
            _("You connected to {connection} for the first time. "
              "Choose the firewall zone to use for this connection.").format(connection=connection_id)
        )
        box.append(intro)

        group = Adw.PreferencesGroup()
        model = Gtk.StringList()
        for choice in self._choices:
            model.append(choice.label)
        self.zone_row = Adw.ComboRow(title=_("Zone"))
        self.zone_row.set_model(model)
        self.zone_row.set_selected(selected)
        group.add(self.zone_row)
        box.append(group)

        self.choose_button = Gtk.Button(label=_("Choose"))
        self.choose_button.add_css_class("suggested-action")
        self.choose_button.add_css_class("pill")
        self.choose_button.set_halign(Gtk.Align.CENTER)
        self.choose_button.connect("clicked", self._on_choose_clicked)
        box.append(self.choose_button)

    def selected_zone(self):
        index = self.zone_row.get_selected()
        if index == Gtk.INVALID_LIST_POSITION or index >= len(self._choices):
            return None
        return self._choices[index].zone

    def _on_choose_clicked(self, _button):
        if self._commit_task is not None and not self._commit_task.done():
            return
        zone = self.selected_zone()
        self.choose_button.set_sensitive(False)
        self._commit_task = asyncio.ensure_future(self._commit(zone))

    async def _commit(self, zone):
        try:
            await self._on_choice(zone)
        except Exception as e:
            logger.error(f"Failed to set zone for {self.connection_id}: {e}")
            self.show_toast(_("Could not set the zone: {error}").format(error=e))
            self.choose_button.set_sensitive(True)
            return
        self.close()

    def show_toast(self, message):
        try:
            toast = Adw.Toast.new(message)
            toast.set_priority(Adw.ToastPriority.HIGH)
            self._toast_overlay.add_toast(toast)
        except (AttributeError, RuntimeError, GLib.Error) as e:
            logger.debug(f"Failed to show toast: {e}")


class PromptPresenter:
    """Keep at most one :class:`ZoneDefenseWindow` open."""

    def __init__(self, application):
        self.application = application
        self.window = None

    @property
    def bound_connection_id(self):
        return self.window.connection_id if self.window is not None else None

    def open(self, connection_id, connection_settings, snapshot, on_choice, on_closed):
        if self.window is not None:
            if self.window.connection_id == connection_id:
                self.window.present()
                return
            self.close()

        window = ZoneDefenseWindow(self.application, connection_id, snapshot, on_choice)
        window.connect("close-request", self._on_close_request, on_closed)
        self.window = window
        window.present()

    def close(self):
        window, self.window = self.window, None
        if window is not None:
            window.close()

    def _on_close_request(self, window, on_closed):
        if self.window is window:
            self.window = None
        on_closed()
        return False

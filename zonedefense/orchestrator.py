"""Decide what to do with every change of the primary network connection.

The :class:`Orchestrator` owns the single zone prompt and the shutdown
state. Collaborators are injected:

``store``
    ``load()``, ``is_new(connection_id)``, ``mark_seen(connection_id)``
``zone_lookup``
    ``list_zones()``, ``get_default_zone()``,
    ``get_current_zone(settings)``, ``apply_zone(settings, zone)``
``notifier``
    ``notify(notification_id, title, body)``
``presenter``
    ``open(connection_id, settings, snapshot, on_choice, on_closed)``
    and ``close()``
``watcher``
    ``on_change(handler)``, ``on_error(handler)``, ``start()``,
    ``dispose()``

Every collaborator call that can suspend is awaited from the asyncio loop
shared with GLib, so state changes between two awaits are never
interleaved with another handler.
"""

import asyncio
import logging
import signal
from functools import partial
from gettext import gettext as _
from typing import Callable, List, Optional

from .errors import (
    PromptError,
    ZoneLookupError,
    error_event_for,
    fatal_message,
)
from .models import ConnectionEvent, ErrorEvent, LifecycleState, PromptState, ZoneSnapshot

logger = logging.getLogger(__name__)

ZONE_CHANGED_NOTIFICATION_ID = "zone-changed"


def _describe_cause(cause) -> str:
    if cause is None:
        return "internal request"
    try:
        return signal.Signals(cause).name
    except ValueError:
        return f"signal {cause}"


class Orchestrator:
    """Connection-change state machine and choice commit protocol."""

    def __init__(
        self,
        store,
        zone_lookup,
        notifier,
        presenter,
        watcher=None,
        terminate: Optional[Callable[[], None]] = None,
    ):
        self.store = store
        self.zone_lookup = zone_lookup
        self.notifier = notifier
        self.presenter = presenter
        self.watcher = watcher
        self._terminate = terminate

        self._state = LifecycleState.RUNNING
        self._prompt: Optional[PromptState] = None
        self._active_connection_id: Optional[str] = None
        self._subscriptions: List[Callable[[], None]] = []
        self._tasks = set()

    # --- State -----------------------------------------------------------

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LifecycleState.RUNNING

    @property
    def prompt(self) -> Optional[PromptState]:
        return self._prompt

    # --- Initialization --------------------------------------------------

    def add_subscription(self, release: Callable[[], None]):
        """Register a callable that detaches an external event source.

        Released in reverse order by :meth:`quit`. When shutdown has already
        begun the subscription is released right away.
        """
        if not self.is_running:
            logger.debug("Shutdown in progress; releasing subscription immediately")
            self._release(release)
            return
        self._subscriptions.append(release)

    async def start(self) -> bool:
        """Load the seen store and start watching connections.

        Either failing is fatal: without them no admission decision can be
        made. Returns True when the orchestrator is up.
        """
        try:
            await self.store.load()
        except Exception as e:
            logger.error(f"Seen connections store failed to initialize: {e}")
            self.handle_error(error_event_for(e, fatal=True))
            return False

        if not self.is_running:
            logger.info("Shutdown requested during initialization; not starting watcher")
            return False

        if self.watcher is None:
            logger.warning("No connection watcher configured")
            return True

        try:
            self.watcher.on_change(self.connection_changed)
            self.watcher.on_error(self.handle_error)
            self.watcher.start()
        except Exception as e:
            logger.error(f"Connection watcher failed to initialize: {e}")
            self.handle_error(error_event_for(e, fatal=True))
            return False

        logger.info("Zone Defense is watching for connection changes")
        return True

    def report_unexpected(self, exc: BaseException):
        """Report an unexpected initialization error and carry on."""
        logger.exception("Unexpected error during initialization", exc_info=exc)
        self.handle_error(error_event_for(exc, fatal=False))

    # --- Event admission -------------------------------------------------

    def connection_changed(self, event: ConnectionEvent):
        """Watcher callback: schedule :meth:`on_connection_changed`."""
        if not self.is_running:
            logger.debug("Ignoring connection change for %r during shutdown", event.connection_id)
            return None
        task = asyncio.ensure_future(self.on_connection_changed(event))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Connection change handling failed", exc_info=exc)
            if self.is_running:
                self.handle_error(error_event_for(exc, fatal=False))

    async def on_connection_changed(self, event: ConnectionEvent):
        connection_id = event.connection_id
        logger.info("Connection changed: %r", connection_id)
        if not self.is_running:
            return

        self._active_connection_id = connection_id
        self._close_prompt_if_connection_changed(connection_id)

        # No active connection, nothing to ask about
        if connection_id == "":
            return

        try:
            is_new = await self.store.is_new(connection_id)
        except Exception as e:
            logger.error(f"Could not check whether {connection_id} is new: {e}")
            self.handle_error(error_event_for(e, fatal=False))
            return

        if not is_new:
            logger.debug("Connection %s already seen; not prompting", connection_id)
            return

        if self._prompt is not None and self._prompt.connection_id == connection_id:
            logger.debug("Prompt already open for %s", connection_id)
            return

        try:
            zones, default_zone, current_zone = await asyncio.gather(
                self.zone_lookup.list_zones(),
                self.zone_lookup.get_default_zone(),
                self.zone_lookup.get_current_zone(event.connection_settings),
            )
        except Exception as e:
            logger.error(f"Zone lookup for {connection_id} failed: {e}")
            if not isinstance(e, ZoneLookupError):
                e = ZoneLookupError(str(e) or e.__class__.__name__)
            self.handle_error(e.to_event(fatal=False))
            return

        # The user may have switched networks while the lookup was running
        if not self._is_still_active(connection_id):
            return

        # A duplicate event's prompt may have been answered in the meantime
        try:
            is_new = await self.store.is_new(connection_id)
        except Exception as e:
            logger.error(f"Could not check whether {connection_id} is new: {e}")
            self.handle_error(error_event_for(e, fatal=False))
            return

        if not is_new:
            logger.info("Connection %s was marked seen during lookup; not prompting", connection_id)
            return
        if not self._is_still_active(connection_id):
            return

        snapshot = ZoneSnapshot(
            zones=frozenset(zones),
            default_zone=default_zone,
            current_zone=current_zone,
        )
        self._open_prompt(connection_id, event.connection_settings, snapshot)

    def _is_still_active(self, connection_id: str) -> bool:
        if not self.is_running or self._active_connection_id != connection_id:
            logger.info("Connection %s is no longer active; not prompting", connection_id)
            return False
        return True

    def _open_prompt(self, connection_id: str, connection_settings, snapshot: ZoneSnapshot):
        if self._prompt is not None:
            if self._prompt.connection_id == connection_id:
                logger.debug("Prompt already open for %s", connection_id)
                return
            self._close_prompt()

        prompt = PromptState(connection_id, connection_settings, snapshot)
        self._prompt = prompt
        try:
            self.presenter.open(
                connection_id,
                connection_settings,
                snapshot,
                partial(
                    self.commit_choice,
                    connection_id,
                    connection_settings,
                    default_zone=snapshot.default_zone,
                ),
                partial(self._prompt_closed, prompt),
            )
        except Exception as e:
            logger.error(f"Failed to open prompt for {connection_id}: {e}")
            if self._prompt is prompt:
                self._prompt = None
            if not isinstance(e, PromptError):
                e = PromptError(str(e) or e.__class__.__name__)
            self.handle_error(e.to_event(fatal=False))
            return
        logger.info("Prompting for zone of connection %s", connection_id)

    def _prompt_closed(self, prompt: PromptState):
        if self._prompt is prompt:
            logger.debug("Prompt for %s closed", prompt.connection_id)
            self._prompt = None

    def _close_prompt_if_connection_changed(self, connection_id: str):
        if self._prompt is not None and self._prompt.connection_id != connection_id:
            logger.info("Closing stale prompt for %s", self._prompt.connection_id)
            self._close_prompt()

    def _close_prompt(self):
        self._prompt = None
        self.presenter.close()

    # --- Choice commit ---------------------------------------------------

    async def commit_choice(
        self,
        connection_id: str,
        connection_settings,
        zone: Optional[str],
        default_zone: Optional[str] = None,
    ):
        """Remember the connection, then apply the chosen zone.

        ``zone`` None means the default zone; ``default_zone`` is its name as
        shown in the prompt, used in the confirmation. Marking the connection seen
        must finish first: applying a zone makes NetworkManager re-announce
        the connection, and an unseen id would reopen the prompt. A failure
        to apply is raised to the caller and does not undo the first step.
        """
        logger.info("Updating zone of %s to %r", connection_id, zone)
        await self.store.mark_seen(connection_id)
        await self.zone_lookup.apply_zone(connection_settings, zone)
        self._notify_zone_changed(connection_id, zone, default_zone)

    def _notify_zone_changed(self, connection_id: str, zone: Optional[str], default_zone: Optional[str]):
        if zone is None:
            if default_zone:
                zone_text = _("the default zone ({zone})").format(zone=default_zone)
            else:
                zone_text = _("the default zone")
        else:
            zone_text = _("zone {zone}").format(zone=zone)

        self._notify(
            ZONE_CHANGED_NOTIFICATION_ID,
            _("Firewall zone updated"),
            _("Connection {connection} now uses {zone_text}.").format(
                connection=connection_id, zone_text=zone_text
            ),
        )

    # --- Errors ----------------------------------------------------------

    def handle_error(self, error: ErrorEvent):
        """Notify the user about ``error``; shut down if it is fatal."""
        if not self.is_running:
            logger.warning("Error during shutdown (%s): %s", error.id, error.message)
            return

        if error.fatal:
            logger.critical("Fatal error %s: %s", error.id, error.message)
            self._notify(error.id, error.title, fatal_message(error.message))
            self.quit()
        else:
            logger.warning("Error %s: %s", error.id, error.message)
            self._notify(error.id, error.title, error.message)

    def _notify(self, notification_id: str, title: str, body: str):
        try:
            self.notifier.notify(notification_id, title, body)
        except Exception as e:
            logger.error(f"Failed to send notification {notification_id} ({title}: {body}): {e}")

    # --- Shutdown --------------------------------------------------------

    def quit(self, cause=None):
        """Tear down subscriptions and the watcher, then stop the application.

        ``cause`` is the signal number that requested the shutdown, or None.
        Only the first call has any effect.
        """
        if not self.is_running:
            logger.debug("Already quitting, ignoring duplicate request")
            return

        logger.info("Quitting due to %s", _describe_cause(cause))
        self._state = LifecycleState.SHUTTING_DOWN
        try:
            while self._subscriptions:
                self._release(self._subscriptions.pop())

            if self.watcher is not None:
                watcher, self.watcher = self.watcher, None
                try:
                    watcher.dispose()
                except Exception as e:
                    logger.error(f"Failed to dispose connection watcher: {e}")

            if self._prompt is not None:
                try:
                    self._close_prompt()
                except Exception as e:
                    logger.error(f"Failed to close prompt: {e}")
                    self._prompt = None

            if self._terminate is not None:
                self._terminate()
        finally:
            self._state = LifecycleState.STOPPED
            logger.info("Shutdown sequence complete")

    @staticmethod
    def _release(release: Callable[[], None]):
        try:
            release()
        except Exception as e:
            logger.error(f"Failed to release subscription: {e}")

"""Error types raised by Zone Defense collaborators.

Each error knows how it should be presented to the user: the notification
id it updates, a short title and whether the condition is fatal.
"""

from gettext import gettext as _

from .models import ErrorEvent

FATAL_SUFFIX = _("Zone Defense is shutting down. You will need to restart it manually.")
GENERIC_ERROR_ID = "unexpected-error"


class ZoneDefenseError(Exception):
    """Base class for errors that are surfaced as notifications."""

    error_id = "zone-defense-error"
    title = _("Zone Defense error")
    fatal = False

    def __init__(self, message: str, *, error_id: str = None, title: str = None, fatal: bool = None):
        super().__init__(message)
        self.message = message
        if error_id is not None:
            self.error_id = error_id
        if title is not None:
            self.title = title
        if fatal is not None:
            self.fatal = fatal

    def to_event(self, fatal: bool = None) -> ErrorEvent:
        """Return the notification form of this error."""
        return ErrorEvent(
            fatal=self.fatal if fatal is None else fatal,
            id=self.error_id,
            title=self.title,
            message=self.message,
        )


class SeenStoreError(ZoneDefenseError):
    """The list of seen connections could not be read or written."""

    error_id = "seen-connections"
    title = _("Unable to access seen connections")


class WatcherError(ZoneDefenseError):
    """NetworkManager could not be watched."""

    error_id = "network-manager"
    title = _("Unable to monitor network connections")
    fatal = True


class ZoneLookupError(ZoneDefenseError):
    """firewalld or NetworkManager failed to answer a zone query."""

    error_id = "zone-lookup"
    title = _("Unable to look up firewall zones")


class PromptError(ZoneDefenseError):
    """The zone prompt could not be shown."""

    error_id = "prompt"
    title = _("Unable to show the zone prompt")


def error_event_for(exc: BaseException, *, fatal: bool = False) -> ErrorEvent:
    """Map any exception to an :class:`ErrorEvent`.

    Unknown exceptions get a generic notification so that nothing reaches the
    user without an explanation.
    """
    if isinstance(exc, ZoneDefenseError):
        return exc.to_event(fatal=fatal or exc.fatal)
    return ErrorEvent(
        fatal=fatal,
        id=GENERIC_ERROR_ID,
        title=_("Unexpected error"),
        message=str(exc) or exc.__class__.__name__,
    )


def fatal_message(message: str) -> str:
    """Append the shutdown notice to a fatal error message."""
    if not message:
        return FATAL_SUFFIX
    return f"{message}\n\n{FATAL_SUFFIX}"

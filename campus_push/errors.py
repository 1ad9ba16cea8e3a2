"""Error taxonomy for the notification service.

Route handlers translate these into HTTP responses; the sweep and the
notifiers log and swallow the upstream/dispatch kinds.
"""

from __future__ import annotations


class CampusPushError(Exception):
    """Base class for all service errors."""


class ValidationError(CampusPushError):
    """Malformed or missing input, or a violated business rule (400)."""


class NotFoundError(CampusPushError):
    """A referenced event, membership or profile does not exist (404)."""


class PermissionDeniedError(CampusPushError):
    """The acting user may not perform this action (403)."""


class ConflictError(CampusPushError):
    """The action conflicts with current state, e.g. a full event (409)."""


class UpstreamFetchError(CampusPushError):
    """The data store could not be read or written."""


class DispatchError(CampusPushError):
    """The push gateway call failed."""


EVENT_FULL_MESSAGE = "Event Full: this event has reached its capacity"
ALREADY_JOINED_MESSAGE = "Already Joined: you have already joined this event"

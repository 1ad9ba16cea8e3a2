"""Resolution of optional profile/event fields into display values."""

from __future__ import annotations

from campus_push.domain.models import Profile

FALLBACK_NAME = "Someone"

SMALL_GROUP_MAX = 6
MEDIUM_GROUP_MAX = 15


def resolve_display_name(profile: Profile | None) -> str:
    """Return a non-empty name for *profile*.

    Display name first, then the local part of the email, then "Someone".
    """
    if profile is None:
        return FALLBACK_NAME
    if profile.display_name and profile.display_name.strip():
        return profile.display_name.strip()
    if profile.email:
        local_part = profile.email.split("@", 1)[0].strip()
        if local_part:
            return local_part
    return FALLBACK_NAME


def resolve_capacity_label(capacity: int | None) -> str:
    if capacity is None:
        return "unlimited"
    if capacity <= SMALL_GROUP_MAX:
        return "small"
    if capacity <= MEDIUM_GROUP_MAX:
        return "medium"
    return "large"


def format_attendance(capacity: int | None, attending: int) -> str:
    """Attendance line, e.g. "3/6 attending" or "3 attending" when unlimited."""
    if capacity is None:
        return f"{attending} attending"
    return f"{attending}/{capacity} attending"

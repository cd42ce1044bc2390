"""Merge authentication records and profile records into User views.

The authentication service is canonical for id, email and creation time; the
profiles table supplies the display fields. The two sets are maintained
independently, so either side may be missing a record.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import UTC, datetime

from collabdesk_cli.models import AuthRecord, ProfileRecord, User

PLACEHOLDER_DOMAIN = "users.collabdesk.invalid"
_SLUG_RE = re.compile(r"[^a-z0-9]+")
_EPOCH = datetime.fromtimestamp(0, UTC)


def display_name(user_id: str, username: str | None, email: str | None) -> str:
    """Username, else the local part of the email, else an id fragment."""
    if username:
        return username
    if email and email.split("@", 1)[0]:
        return email.split("@", 1)[0]
    return user_id[:8]


def placeholder_email(name: str) -> str:
    """Deterministic stand-in for an identity without a resolvable email."""
    slug = _SLUG_RE.sub("-", name.lower()).strip("-") or "user"
    return f"{slug}@{PLACEHOLDER_DOMAIN}"


def is_placeholder_email(email: str) -> bool:
    return email.endswith(f"@{PLACEHOLDER_DOMAIN}")


def _merge(auth: AuthRecord, profile: ProfileRecord | None) -> User:
    username = profile.username if profile else None
    if not username and auth.email:
        # No display name chosen yet: fall back to the email local part
        username = auth.email.split("@", 1)[0] or None
    email = auth.email or placeholder_email(display_name(auth.id, username, None))
    return User(
        id=auth.id,
        email=email,
        username=username,
        phone=profile.phone if profile else None,
        joined_at=auth.created_at,
    )


def resolve_users(
    auth_records: Iterable[AuthRecord],
    profile_records: Iterable[ProfileRecord],
    session: AuthRecord | None = None,
) -> list[User]:
    """Build the unified user list.

    Args:
        auth_records: Identities from the authentication service
        profile_records: Rows of the profiles table
        session: Identity of the signed-in caller, always represented

    Returns:
        Users without duplicate ids, newest first
    """
    profiles: dict[str, ProfileRecord] = {}
    for profile in profile_records:
        profiles.setdefault(profile.id, profile)

    users: dict[str, User] = {}
    for auth in auth_records:
        if auth.id not in users:
            users[auth.id] = _merge(auth, profiles.get(auth.id))

    for profile in profiles.values():
        if profile.id in users:
            continue
        if session is not None and session.id == profile.id:
            users[profile.id] = _merge(session, profile)
            continue
        name = display_name(profile.id, profile.username, None)
        users[profile.id] = User(
            id=profile.id,
            email=placeholder_email(name),
            username=profile.username,
            phone=profile.phone,
            joined_at=profile.created_at or profile.updated_at or _EPOCH,
        )

    # Self-heal: the signed-in caller appears even with no record anywhere
    if session is not None and session.id not in users:
        users[session.id] = _merge(session, None)

    return sorted(users.values(), key=lambda user: user.joined_at, reverse=True)

"""
Identity context and role-based route gating.

The signed-in identity is an explicit value handed to whichever
component needs it, never ambient state.  :class:`IdentityContext` is
the one place that learns about sign-in and sign-out and fans the change
out to its subscribers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

LOGIN_PATH = '/login'

# role -> path prefix of the pages that role may open
ROUTE_TREES: dict[str, str] = {
    'driver': '/driver/',
    'hospital': '/hospital/',
}


@dataclass(frozen=True)
class Identity:
    user_id: int
    username: str
    email: str
    role: str

    @classmethod
    def from_user(cls, user: Any) -> Optional['Identity']:
        """Build an identity from a Django user; anonymous users give None."""
        if user is None or not getattr(user, 'is_authenticated', False):
            return None
        return cls(user_id=user.pk, username=user.username, email=user.email, role=user.role)

    @property
    def home(self) -> str:
        return home_for(self.role)

    def as_dict(self) -> dict:
        return {'id': self.user_id, 'username': self.username, 'email': self.email, 'role': self.role}


IdentityListener = Callable[[Optional[Identity]], None]


class IdentityContext:
    """Holds the current identity and notifies listeners when it changes."""

    def __init__(self, identity: Optional[Identity] = None):
        self._current = identity
        self._listeners: list[IdentityListener] = []

    @property
    def current(self) -> Optional[Identity]:
        return self._current

    def on_change(self, callback: IdentityListener) -> Callable[[], None]:
        """Register ``callback``; the returned function removes it again."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def set(self, identity: Optional[Identity]) -> None:
        if identity == self._current:
            return
        self._current = identity
        logger.debug("identity changed to %s", identity.username if identity else None)
        for listener in list(self._listeners):
            listener(identity)

    def clear(self) -> None:
        self.set(None)


def home_for(role: str) -> str:
    return ROUTE_TREES.get(role, LOGIN_PATH)


def tree_for(path: str) -> Optional[str]:
    """Return the role whose route tree contains ``path``."""
    for role, prefix in ROUTE_TREES.items():
        if path == prefix.rstrip('/') or path.startswith(prefix):
            return role
    return None


def resolve_route(path: str, identity: Optional[Identity]) -> Optional[str]:
    """Return where a page request for ``path`` must be redirected, or None.

    Role trees need a signed-in identity of that role; the root path
    forwards to the login entry point or to the identity's home.
    """
    if path == '/':
        return identity.home if identity else LOGIN_PATH
    role = tree_for(path)
    if role is None:
        return None
    if identity is None:
        return LOGIN_PATH
    if identity.role != role:
        return identity.home
    return None

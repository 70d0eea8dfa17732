"""
Identity collaborator.
The feed only needs to know whether someone is signed in and their opaque key;
the auth layer that produces the identity lives outside this project.
"""
import logging
from typing import Awaitable, Callable, List, Optional

from core.entities import Identity

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], Awaitable[None]]


class IdentityProvider:
    def __init__(self, identity: Optional[Identity] = None):
        self._current = identity
        self._listeners: List[IdentityListener] = []

    @property
    def current(self) -> Optional[Identity]:
        return self._current

    @property
    def is_authenticated(self) -> bool:
        return self._current is not None

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def set_identity(self, identity: Optional[Identity]) -> None:
        if identity == self._current:
            return

        self._current = identity
        logger.info(f"Identity changed: {identity.key if identity else 'anonymous'}")

        for listener in list(self._listeners):
            await listener(identity)

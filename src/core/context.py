"""
Per-request context: the authenticated actor and the elevated-privilege scope.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import FrozenSet, Iterator, Optional

from .errors import AuthorizeError
from .schema import Person

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElevatedScope:
    """Capability handed out while authorization checks are bypassed."""
    reason: str
    depth: int


class Context:
    """Carries the current actor through a single request.

    Elevated privilege is only available through ``elevated()``; there is no
    way to switch it on or off by hand. Scopes nest, and leaving the outermost
    one always restores normal checking, including when the body raises.
    """

    def __init__(self, current_user: Optional[Person] = None,
                 special_groups: FrozenSet[str] = frozenset(), admin: bool = False):
        self.current_user = current_user
        self.special_groups = frozenset(special_groups)
        self.admin = admin
        self._elevated_depth = 0

    @property
    def is_elevated(self) -> bool:
        return self._elevated_depth > 0

    @property
    def user_id(self) -> Optional[str]:
        return self.current_user.id if self.current_user else None

    @contextmanager
    def elevated(self, reason: str) -> Iterator[ElevatedScope]:
        self._elevated_depth += 1
        logger.debug(f"Entering elevated scope ({reason}), depth {self._elevated_depth}")
        try:
            yield ElevatedScope(reason=reason, depth=self._elevated_depth)
        finally:
            self._elevated_depth -= 1
            logger.debug(f"Left elevated scope ({reason}), depth {self._elevated_depth}")

    def check_privileged(self, operation: str) -> None:
        """Raise AuthorizeError unless the actor is an administrator or inside an elevated scope."""
        if self.admin or self.is_elevated:
            return
        raise AuthorizeError(operation)

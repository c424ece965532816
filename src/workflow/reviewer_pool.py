"""
Process-wide resolution of the configured reviewer pool group.
"""

import threading
import uuid
from typing import Optional

from util.logging import logger

from ..core.config import REVIEWER_GROUP_KEY, ConfigurationService
from ..core.dao import IdentityStore
from ..core.errors import StoreError
from ..core.schema import Group


class ReviewerPoolCache:
    """Resolves the reviewer pool once, by name first and then by id.

    The first result, including "no pool", is kept until ``invalidate()``.
    Resolution and invalidation hold the same lock.
    """

    def __init__(self, identity: IdentityStore, configuration: ConfigurationService):
        self.identity = identity
        self.configuration = configuration
        self._lock = threading.Lock()
        self._group: Optional[Group] = None
        self._initialised = False

    def resolve(self) -> Optional[Group]:
        with self._lock:
            if self._initialised:
                return self._group

            group_id_or_name = self.configuration.get_property(REVIEWER_GROUP_KEY)
            group = None
            if group_id_or_name and group_id_or_name.strip():
                group_id_or_name = group_id_or_name.strip()
                try:
                    group = self.identity.find_group_by_name(group_id_or_name)
                    if group is None:
                        group = self.identity.find_group(str(uuid.UUID(group_id_or_name)))
                except (StoreError, ValueError) as e:
                    logger.error(f"Could not determine the configured reviewer group "
                                 f"{REVIEWER_GROUP_KEY}={group_id_or_name}: {e}")
                    group = None

            self._group = group
            self._initialised = True
            return self._group

    def invalidate(self) -> None:
        with self._lock:
            self._group = None
            self._initialised = False

    @property
    def initialised(self) -> bool:
        return self._initialised

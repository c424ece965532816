"""
READ permission on groups, extended so that people who need to pick reviewers
can see the reviewer pool.
"""

import logging
import uuid
from typing import Optional, Tuple

from util.logging import logger as structured_logger

from ..core.authorize import AuthorizeService
from ..core.config import (
    DEFAULT_REVIEWER_GROUP_NAME,
    REVIEW_MANAGERS_GROUP,
    REVIEWER_GROUP_KEY,
    ConfigurationService,
)
from ..core.context import Context
from ..core.dao import IdentityStore, WorkItemStore
from ..core.errors import StoreError
from ..core.schema import Group

logger = logging.getLogger(__name__)

READ = "READ"
GROUP_TYPE = "GROUP"


class GroupPermissionEvaluator:
    """Decides READ access to a group for the current actor.

    Checks run in a fixed order and the first grant wins: special groups,
    then (for authenticated actors) direct membership, community or
    collection administration with account management enabled, and finally
    the reviewer pool exception for review managers and active submitters.
    Anything else, including a store failure, is a denial.
    """

    def __init__(self, identity: IdentityStore, items: WorkItemStore, authorize: AuthorizeService,
                 configuration: ConfigurationService):
        self.identity = identity
        self.items = items
        self.authorize = authorize
        self.configuration = configuration

    def has_permission(self, context: Context, target_id, target_type: str, permission: str) -> bool:
        # Other permissions and target types are left to other evaluators
        if (permission or "").upper() != READ or (target_type or "").upper() != GROUP_TYPE:
            return False
        if target_id is None:
            return False

        try:
            granted, reason = self._evaluate(context, str(target_id))
        except StoreError as e:
            logger.error(f"Error evaluating group permission for {target_id}: {e}", exc_info=True)
            granted, reason = False, "store error"

        structured_logger.log_authorization_decision(context.user_id, str(target_id), READ, granted, reason)
        return granted

    def _evaluate(self, context: Context, target_id: str) -> Tuple[bool, str]:
        try:
            group_id = str(uuid.UUID(target_id))
        except ValueError:
            return False, "malformed group id"

        target_group = self.identity.find_group(group_id)
        if target_group is None:
            return False, "group not found"

        if target_group.id in context.special_groups:
            return True, "special group"

        person = context.current_user
        if person is None:
            return False, "anonymous"

        if self.identity.is_member(person, target_group):
            return True, "member"

        if self.authorize.is_community_admin(context) and self.authorize.can_community_admin_manage_accounts():
            return True, "community admin"
        if self.authorize.is_collection_admin(context) and self.authorize.can_collection_admin_manage_accounts():
            return True, "collection admin"

        if self.is_reviewer_pool(target_group):
            review_managers = self.identity.find_group_by_name(REVIEW_MANAGERS_GROUP)
            if review_managers is not None and self.identity.is_member(person, review_managers):
                return True, "review manager"
            if self.items.find_by_submitter(person):
                return True, "active submitter"

        return False, "no matching relationship"

    def reviewer_pool_name(self) -> str:
        configured: Optional[str] = self.configuration.get_property(REVIEWER_GROUP_KEY)
        if configured is None or not configured.strip():
            return DEFAULT_REVIEWER_GROUP_NAME
        return configured.strip()

    def is_reviewer_pool(self, group: Group) -> bool:
        """Name match ignoring case; an id configured in place of a name also matches."""
        configured = self.reviewer_pool_name()
        if group.name and group.name.lower() == configured.lower():
            return True
        return group.id == configured.lower()

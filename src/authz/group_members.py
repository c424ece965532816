"""
Member listing for groups, open to submitters and review managers for the reviewer pool.
"""

import uuid
from typing import Optional

from util.logging import audit_event

from ..core.authorize import AuthorizeService
from ..core.config import REVIEW_MANAGERS_GROUP, REVIEWER_GROUP_KEY, ConfigurationService
from ..core.context import Context
from ..core.dao import IdentityStore, WorkItemStore
from ..core.schema import Group, MemberPage


class GroupNotFoundError(Exception):
    pass


class AccessDeniedError(Exception):
    pass


class GroupMembersService:

    def __init__(self, identity: IdentityStore, items: WorkItemStore, authorize: AuthorizeService,
                 configuration: ConfigurationService):
        self.identity = identity
        self.items = items
        self.authorize = authorize
        self.configuration = configuration

    def list_members(self, context: Context, group_id: str, offset: int = 0,
                     limit: Optional[int] = 20) -> MemberPage:
        group = self._find_group(group_id)
        if group is None:
            raise GroupNotFoundError(f"Group not found: {group_id}")

        if not self.can_list_members(context, group):
            audit_event(
                event_type="authorization_members_denied",
                identifiers={"group_id": group.id, "actor": context.user_id}
            )
            raise AccessDeniedError("Access denied to group members")

        return MemberPage(
            members=self.identity.all_members(group, offset=offset, limit=limit),
            total=self.identity.count_members(group)
        )

    def can_list_members(self, context: Context, group: Group) -> bool:
        if self.authorize.is_admin(context):
            return True

        person = context.current_user
        if self.identity.is_member(person, group):
            return True

        # Only an explicitly configured pool opens up here
        pool_name = self.configuration.get_property(REVIEWER_GROUP_KEY)
        if pool_name and group.name and group.name.lower() == pool_name.strip().lower():
            if self.items.find_by_submitter(person):
                return True
            review_managers = self.identity.find_group_by_name(REVIEW_MANAGERS_GROUP)
            if self.identity.is_member(person, review_managers):
                return True

        return False

    def _find_group(self, group_id: str) -> Optional[Group]:
        try:
            return self.identity.find_group(str(uuid.UUID(str(group_id))))
        except ValueError:
            return None

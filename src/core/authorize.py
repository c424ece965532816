"""
Administrative role checks used by the permission evaluators.

Community and collection administrators are recognised by membership in the
conventionally named COMMUNITY_<id>_ADMIN / COLLECTION_<id>_ADMIN groups.
"""

from .config import (
    ADMIN_GROUP,
    COLLECTION_ADMIN_ACCOUNTS_KEY,
    COMMUNITY_ADMIN_ACCOUNTS_KEY,
    ConfigurationService,
)
from .context import Context
from .dao import IdentityStore


class AuthorizeService:

    def __init__(self, identity: IdentityStore, configuration: ConfigurationService):
        self.identity = identity
        self.configuration = configuration

    def is_admin(self, context: Context) -> bool:
        if context.admin:
            return True
        admins = self.identity.find_group_by_name(ADMIN_GROUP)
        return self.identity.is_member(context.current_user, admins)

    def is_community_admin(self, context: Context) -> bool:
        return self.identity.is_member_of_any(context.current_user, "COMMUNITY\\_%\\_ADMIN")

    def is_collection_admin(self, context: Context) -> bool:
        return self.identity.is_member_of_any(context.current_user, "COLLECTION\\_%\\_ADMIN")

    def can_community_admin_manage_accounts(self) -> bool:
        return self.configuration.get_bool(COMMUNITY_ADMIN_ACCOUNTS_KEY, True)

    def can_collection_admin_manage_accounts(self) -> bool:
        return self.configuration.get_bool(COLLECTION_ADMIN_ACCOUNTS_KEY, True)

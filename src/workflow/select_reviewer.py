"""
Reviewer and advisor assignment for a work item.
"""

import uuid
from typing import Any, Dict, List, Optional

from util.logging import logger

from ..core.context import Context
from ..core.dao import IdentityStore, RoleAssignmentStore
from ..core.schema import Group, Person, RoleAssignment, WorkItem
from .action import RETURN_TO_POOL, SUBMIT_CANCEL, ActionAdvancedInfo, ProcessingAction, format_bool
from .definition import Step
from .request import ActionRequest
from .result import ActionOutcome
from .reviewer_pool import ReviewerPoolCache

SUBMIT_SELECT_REVIEWER = "submit_select_reviewer"

# Request parameters
REVIEWER_PARAM = "eperson"
ADVISOR_PARAM = "advisor"

ADVISOR_ROLE = "advisor"
REVIEWER_GROUP_PREFIX = "selectedReviewsGroup_"


def parse_person_id(raw: Optional[str]) -> Optional[str]:
    """Canonical UUID string, or None for blank or malformed input."""
    if raw is None or not raw.strip():
        return None
    try:
        return str(uuid.UUID(raw.strip()))
    except ValueError:
        return None


class SelectReviewerActionAdvancedInfo(ActionAdvancedInfo):

    def __init__(self, group: Optional[str] = None, advisor: Optional[str] = None,
                 advisor_required: bool = False, type: Optional[str] = None):
        super().__init__(type)
        self.group = group
        self.advisor = advisor
        self.advisor_required = advisor_required

    def canonical_string(self, type: str) -> str:
        return (f"{type};group,{self.group or 'none'}"
                f";advisor,{self.advisor or 'none'}"
                f";advisorRequired,{format_bool(self.advisor_required)}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["group"] = self.group
        data["advisorRequired"] = self.advisor_required
        return data


class SelectReviewerAction(ProcessingAction):
    """Binds reviewers, and optionally an advisor, to a work item.

    The submitter is expected to run this action; that is logged here and
    enforced by the caller. Reviewers must all belong to the reviewer pool
    when one is configured. Several reviewers are bound through a generated
    group named after the item.
    """

    action_id = "selectrevieweraction"

    def __init__(self, identity: IdentityStore, roles: RoleAssignmentStore, reviewer_pool: ReviewerPoolCache,
                 role_id: str = "reviewer", advisor_required: bool = True):
        self.identity = identity
        self.roles = roles
        self.reviewer_pool = reviewer_pool
        self.role_id = role_id
        self.advisor_required = advisor_required

    def activate(self, context: Context, work_item: WorkItem) -> None:
        pass

    def execute(self, context: Context, work_item: WorkItem, step: Step,
                request: ActionRequest) -> ActionOutcome:
        if context.current_user is not None and context.user_id == work_item.submitter_id:
            logger.info(f"Submitter {context.current_user.email} selecting reviewers for item {work_item.id}")
        else:
            actor = context.current_user.email if context.current_user else "unknown"
            logger.debug(f"User {actor} is not the submitter of item {work_item.id}")

        submit_button = request.get_submit_button(SUBMIT_CANCEL)
        if submit_button == SUBMIT_CANCEL:
            return ActionOutcome.cancel()
        if submit_button.startswith(SUBMIT_SELECT_REVIEWER):
            return self._process_select_reviewers(context, work_item, request)
        return ActionOutcome.error()

    def _process_select_reviewers(self, context: Context, work_item: WorkItem,
                                  request: ActionRequest) -> ActionOutcome:
        reviewer_ids = request.get_parameter_values(REVIEWER_PARAM)
        if not reviewer_ids:
            logger.warning(f"No reviewer selected for item {work_item.id}")
            return ActionOutcome.error()

        reviewers = self._resolve_reviewers(reviewer_ids)
        if not self.check_reviewers_valid(reviewers):
            logger.log_workflow_action(self.action_id, work_item.id, "error",
                                       {"requested": len(reviewer_ids), "resolved": len(reviewers)})
            return ActionOutcome.error()

        self._assign_reviewers(context, work_item, reviewers)
        self._assign_advisor_from_request(context, work_item, request)
        return ActionOutcome.complete()

    def _resolve_reviewers(self, reviewer_ids: List[str]) -> List[Person]:
        reviewers: List[Person] = []
        seen = set()
        for raw_id in reviewer_ids:
            person_id = parse_person_id(raw_id)
            reviewer = self.identity.find_person(person_id) if person_id else None
            if reviewer is None:
                logger.warning(f"Reviewer not found for id {raw_id}")
                continue
            if reviewer.id in seen:
                continue
            seen.add(reviewer.id)
            reviewers.append(reviewer)
        return reviewers

    def check_reviewers_valid(self, reviewers: List[Person]) -> bool:
        if not reviewers:
            return False
        group = self.reviewer_pool.resolve()
        if group is not None:
            for reviewer in reviewers:
                if not self.identity.is_member(reviewer, group):
                    logger.error(f"Reviewer {reviewer.email} is not a member of group {group.id}")
                    return False
        return True

    def _upsert_role(self, work_item: WorkItem, role_id: str) -> RoleAssignment:
        existing = self.roles.find(work_item.id, role_id)
        if existing is not None:
            return existing
        return self.roles.create(work_item.id, role_id)

    def _assign_reviewers(self, context: Context, work_item: WorkItem,
                          reviewers: List[Person]) -> RoleAssignment:
        assignment = self._upsert_role(work_item, self.role_id)

        if len(reviewers) == 1:
            assignment.bind_person(reviewers[0])
        else:
            with context.elevated("reviewer group creation"):
                group = self._reviewer_group(context, work_item)
                for reviewer in reviewers:
                    self.identity.add_member(context, group, reviewer)
            assignment.bind_group(group)

        self.roles.update(assignment)
        logger.log_role_assignment(work_item.id, self.role_id, assignment.person_id, assignment.group_id)
        return assignment

    def _reviewer_group(self, context: Context, work_item: WorkItem) -> Group:
        """The item's reviewer group, emptied if it already exists."""
        name = f"{REVIEWER_GROUP_PREFIX}{work_item.id}"
        group = self.identity.find_group_by_name(name)
        if group is not None:
            self.identity.clear_members(context, group)
            return group
        group = self.identity.create_group(context)
        self.identity.set_name(context, group, name)
        return group

    def _assign_advisor_from_request(self, context: Context, work_item: WorkItem,
                                     request: ActionRequest) -> None:
        raw_advisor = request.get_parameter(ADVISOR_PARAM)
        if raw_advisor is None or not raw_advisor.strip():
            logger.info(f"No advisor selected for item {work_item.id}")
            return

        advisor_id = parse_person_id(raw_advisor)
        if advisor_id is None:
            logger.warning(f"Invalid advisor id: {raw_advisor}")
            return

        advisor = self.identity.find_person(advisor_id)
        if advisor is None:
            logger.warning(f"Advisor not found for id {advisor_id}")
            return

        self.assign_advisor(work_item, advisor)

    def assign_advisor(self, work_item: WorkItem, advisor: Person) -> RoleAssignment:
        """Create or update the advisor role; an unchanged advisor is left alone."""
        existing = self.roles.find(work_item.id, ADVISOR_ROLE)
        if existing is not None:
            if existing.person_id != advisor.id:
                existing.bind_person(advisor)
                self.roles.update(existing)
                logger.log_role_assignment(work_item.id, ADVISOR_ROLE, advisor.id, status="updated")
            else:
                logger.info(f"Advisor already assigned to item {work_item.id}")
            return existing

        assignment = self.roles.create(work_item.id, ADVISOR_ROLE)
        assignment.bind_person(advisor)
        self.roles.update(assignment)
        logger.log_role_assignment(work_item.id, ADVISOR_ROLE, advisor.id)
        return assignment

    def get_options(self) -> List[str]:
        return [SUBMIT_SELECT_REVIEWER, RETURN_TO_POOL]

    def get_advanced_options(self) -> List[str]:
        return [SUBMIT_SELECT_REVIEWER]

    def get_advanced_info(self) -> List[ActionAdvancedInfo]:
        group = self.reviewer_pool.resolve()
        info = SelectReviewerActionAdvancedInfo(
            group=group.id if group else None,
            advisor_required=self.advisor_required,
            type=SUBMIT_SELECT_REVIEWER
        )
        info.generate_id(SUBMIT_SELECT_REVIEWER)
        return [info]

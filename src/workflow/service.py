"""
Workflow engine: dispatches requests to the action of the item's current step
and moves the item along the workflow according to the outcome.
"""

from typing import Any, Dict, List, Optional, Set

from util.logging import audit_event, logger

from ..core.context import Context
from ..core.dao import IdentityStore, MetadataStore, RoleAssignmentStore, WorkflowEventStore, WorkItemStore
from ..core.schema import SCORE_FIELD, Person, WorkItem
from .action import ProcessingAction
from .definition import ARCHIVED_STEP, SUBMISSION_STEP, Step, Workflow
from .request import ActionRequest
from .result import ActionOutcome, OutcomeType


class WorkflowError(Exception):
    """The item cannot be processed in its current state."""


class WorkflowService:

    def __init__(self, workflow: Workflow, items: WorkItemStore, roles: RoleAssignmentStore,
                 identity: IdentityStore, metadata: MetadataStore, events: WorkflowEventStore):
        self.workflow = workflow
        self.items = items
        self.roles = roles
        self.identity = identity
        self.metadata = metadata
        self.events = events
        self._actions: Dict[str, ProcessingAction] = {}

    def register_action(self, action: ProcessingAction) -> None:
        self._actions[action.action_id] = action

    def get_action(self, step: Step) -> ProcessingAction:
        action = self._actions.get(step.action_id)
        if action is None:
            raise WorkflowError(f"No action registered for step {step.id} ({step.action_id})")
        return action

    def current_step(self, work_item: WorkItem) -> Step:
        step = self.workflow.get_step(work_item.step_id)
        if not work_item.active or step is None:
            raise WorkflowError(f"Item {work_item.id} is not in the workflow (step {work_item.step_id})")
        return step

    def start(self, context: Context, submitter: Person) -> WorkItem:
        """Put a new work item at the first step of the workflow."""
        step = self.workflow.first_step
        work_item = self.items.create(submitter.id, step.id)
        self.events.add_event(work_item.id, submitter.id, "workflow_started", step.id)
        self.get_action(step).activate(context, work_item)
        return work_item

    def execute(self, context: Context, work_item: WorkItem, request: ActionRequest) -> ActionOutcome:
        step = self.current_step(work_item)
        action = self.get_action(step)

        outcome = action.execute(context, work_item, step, request)
        logger.log_workflow_action(action.action_id, work_item.id, str(outcome), {"step": step.id})

        if outcome.type is OutcomeType.OUTCOME:
            self.events.add_event(work_item.id, context.user_id, f"{step.id}.{outcome.outcome}")
            if outcome.is_complete and self.is_step_complete(work_item, step):
                # An automatic next step decides the result the caller sees
                return self._advance(context, work_item, step) or outcome
        # SUBMISSION_PAGE: the action already returned the item to its submitter
        # CANCEL / ERROR: the item stays where it is
        return outcome

    def is_step_complete(self, work_item: WorkItem, step: Step) -> bool:
        """A review step is complete once every assigned reviewer has a score entry."""
        if not step.requires_all_reviewers:
            return True
        assigned = self.assigned_reviewer_ids(work_item, step.reviewer_role_id)
        return assigned <= self.scored_reviewer_ids(work_item)

    def assigned_reviewer_ids(self, work_item: WorkItem, role_id: str) -> Set[str]:
        assignment = self.roles.find(work_item.id, role_id)
        if assignment is None:
            return set()
        if assignment.person_id is not None:
            return {assignment.person_id}
        if assignment.group_id is not None:
            group = self.identity.find_group(assignment.group_id)
            return {person.id for person in self.identity.all_members(group)} if group else set()
        return set()

    def scored_reviewer_ids(self, work_item: WorkItem) -> Set[str]:
        records = self.metadata.get_records(work_item.id, SCORE_FIELD)
        return {record.authority for record in records if record.authority is not None}

    def count_assigned_reviewers(self, work_item: WorkItem, role_id: str) -> int:
        return len(self.assigned_reviewer_ids(work_item, role_id))

    def _advance(self, context: Context, work_item: WorkItem, step: Step) -> Optional[ActionOutcome]:
        """Move to the next step; returns the outcome of an automatic step, if one ran."""
        next_step = self.workflow.next_step(step)
        if next_step is None:
            self.items.deactivate(work_item, ARCHIVED_STEP)
            self.events.add_event(work_item.id, context.user_id, "archived", step.id)
            audit_event(event_type="workflow_archived", identifiers={"item_id": work_item.id})
            return None

        self.items.set_step(work_item, next_step.id)
        self.events.add_event(work_item.id, context.user_id, "step_entered", next_step.id)
        self.get_action(next_step).activate(context, work_item)
        if next_step.automatic:
            return self.execute(context, work_item, ActionRequest())
        return None

    def send_back_to_submitter(self, context: Context, work_item: WorkItem, actor: Optional[Person],
                               provenance_prefix: str, message: str) -> None:
        """Take the item out of review and return it to its submitter with a reason."""
        self.roles.delete_by_item(work_item.id)
        self.items.deactivate(work_item, SUBMISSION_STEP)
        self.events.add_event(
            work_item.id,
            actor.id if actor else None,
            "sent_back_to_submitter",
            f"{provenance_prefix} Rejected by {actor.email if actor else 'system'}, reason: {message}"
        )
        audit_event(
            event_type="workflow_sent_back",
            identifiers={"item_id": work_item.id, "actor": actor.id if actor else None},
            payload={"reason": message}
        )

    def options_for(self, work_item: WorkItem) -> Dict[str, Any]:
        step = self.current_step(work_item)
        action = self.get_action(step)
        return {
            "step": step.id,
            "action": action.action_id,
            "options": action.get_options(),
            "advanced_options": action.get_advanced_options(),
            "advanced_info": [info.to_dict() for info in action.get_advanced_info()],
        }

    def find_by_submitter(self, person: Optional[Person]) -> List[WorkItem]:
        return self.items.find_by_submitter(person)

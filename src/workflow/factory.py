"""
Composition root: wires stores, configuration, caches and actions together.
"""

from dataclasses import dataclass
from typing import Optional

from ..core.authorize import AuthorizeService
from ..core.config import (
    DEFAULT_MAX_SCORE,
    DEFAULT_MINIMUM_ACCEPTANCE,
    DESCRIPTION_REQUIRED_KEY,
    MAX_SCORE_KEY,
    MINIMUM_ACCEPTANCE_KEY,
    ConfigurationService,
)
from ..core.dao import IdentityStore, MetadataStore, RoleAssignmentStore, WorkflowEventStore, WorkItemStore
from ..core.db import init_db
from .definition import Workflow, default_workflow
from .reviewer_pool import ReviewerPoolCache
from .score_evaluation import ScoreEvaluationAction
from .score_review import ScoreReviewAction
from .select_reviewer import SelectReviewerAction
from .service import WorkflowService


@dataclass
class WorkflowServices:
    configuration: ConfigurationService
    metadata: MetadataStore
    identity: IdentityStore
    roles: RoleAssignmentStore
    items: WorkItemStore
    events: WorkflowEventStore
    authorize: AuthorizeService
    reviewer_pool: ReviewerPoolCache
    workflow: WorkflowService


def build_services(configuration: Optional[ConfigurationService] = None,
                   workflow: Optional[Workflow] = None) -> WorkflowServices:
    """Create the stores and register the score-review actions on a fresh workflow service."""
    configuration = configuration or ConfigurationService()
    init_db()

    metadata = MetadataStore()
    identity = IdentityStore()
    roles = RoleAssignmentStore()
    items = WorkItemStore()
    events = WorkflowEventStore()
    reviewer_pool = ReviewerPoolCache(identity, configuration)

    workflow_service = WorkflowService(workflow or default_workflow(), items, roles, identity, metadata, events)
    workflow_service.register_action(SelectReviewerAction(identity, roles, reviewer_pool))
    workflow_service.register_action(ScoreReviewAction(
        metadata,
        configuration,
        max_value=configuration.get_decimal(MAX_SCORE_KEY, DEFAULT_MAX_SCORE),
        description_required=configuration.get_bool(DESCRIPTION_REQUIRED_KEY, False)
    ))
    workflow_service.register_action(ScoreEvaluationAction(
        metadata,
        workflow_service,
        minimum_acceptance_score=configuration.get_decimal(MINIMUM_ACCEPTANCE_KEY, DEFAULT_MINIMUM_ACCEPTANCE)
    ))

    return WorkflowServices(
        configuration=configuration,
        metadata=metadata,
        identity=identity,
        roles=roles,
        items=items,
        events=events,
        authorize=AuthorizeService(identity, configuration),
        reviewer_pool=reviewer_pool,
        workflow=workflow_service
    )

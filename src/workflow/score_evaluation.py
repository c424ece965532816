"""
Score evaluation: average the reviewers' scores and accept or reject the item.
"""

from decimal import Decimal
from typing import Iterable, List, Tuple

from util.logging import audit_event, logger

from ..core.context import Context
from ..core.dao import MetadataStore
from ..core.schema import PROVENANCE_FIELD, REVIEW_FIELD, SCORE_FIELD, WorkItem
from .action import RETURN_TO_POOL, ProcessingAction
from .definition import Step
from .request import ActionRequest
from .result import ActionOutcome
from .score_review import format_score, parse_score

REJECTION_MESSAGE = "The item was rejected due to a low review score."


def mean_score(values: Iterable[str]) -> Tuple[Decimal, int]:
    """Mean of the values that parse as decimals, and how many did.

    Malformed values are skipped; with no valid value the mean is 0.
    """
    total = Decimal("0")
    valid = 0
    for value in values:
        score = parse_score(value)
        if score is None:
            continue
        total += score
        valid += 1
    if valid == 0:
        return Decimal("0"), 0
    return total / valid, valid


class ScoreEvaluationAction(ProcessingAction):
    """Accepts the item when the mean score reaches the minimum, otherwise returns it to the submitter."""

    action_id = "evaluationaction"

    def __init__(self, metadata: MetadataStore, workflow_service,
                 minimum_acceptance_score: Decimal = Decimal("0")):
        self.metadata = metadata
        self.workflow_service = workflow_service
        self.minimum_acceptance_score = Decimal(minimum_acceptance_score)

    def activate(self, context: Context, work_item: WorkItem) -> None:
        pass

    def execute(self, context: Context, work_item: WorkItem, step: Step,
                request: ActionRequest) -> ActionOutcome:
        mean, valid = mean_score(self.metadata.get(work_item.id, SCORE_FIELD))
        mean_text = format_score(mean)
        passed = mean >= self.minimum_acceptance_score

        # Scores are consumed by the evaluation whatever the result
        self.metadata.clear(context, work_item.id, SCORE_FIELD)

        logger.log_score_evaluation(work_item.id, mean_text, str(self.minimum_acceptance_score),
                                    passed, valid)

        if passed:
            self._add_rating_info_to_provenance(context, work_item, step, mean_text)
            return ActionOutcome.complete()

        self.workflow_service.send_back_to_submitter(
            context, work_item, context.current_user, self.provenance_start_id(step), REJECTION_MESSAGE
        )
        return ActionOutcome.submission_page()

    def _add_rating_info_to_provenance(self, context: Context, work_item: WorkItem, step: Step,
                                       mean_text: str) -> None:
        description = (f"{self.provenance_start_id(step)} Approved for entry into archive "
                       f"with a score of: {mean_text}")

        reviews = self.metadata.get(work_item.id, REVIEW_FIELD)
        if reviews:
            description += " | Reviews: " + "".join(f"; {review}" for review in reviews)

        with context.elevated("score evaluation provenance"):
            self.metadata.add(context, work_item.id, PROVENANCE_FIELD, description, language="en")
            self.metadata.update(context, work_item.id)

        audit_event(
            event_type="provenance_added",
            identifiers={"item_id": work_item.id, "step": step.id},
            payload={"note": description}
        )

    def get_options(self) -> List[str]:
        return [RETURN_TO_POOL]

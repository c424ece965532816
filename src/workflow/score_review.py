"""
Score intake: one reviewer submits a decimal score and optional commentary.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext, localcontext
from typing import Any, Dict, List, Optional

from util.logging import logger

from ..core.config import REVIEWER_FILE_EDIT_KEY, ConfigurationService
from ..core.context import Context
from ..core.dao import MetadataStore
from ..core.schema import REVIEW_FIELD, SCORE_FIELD, WorkItem
from .action import (
    RETURN_TO_POOL,
    SUBMIT_CANCEL,
    SUBMIT_EDIT_METADATA,
    ActionAdvancedInfo,
    ProcessingAction,
    format_bool,
)
from .definition import Step
from .request import ActionRequest
from .result import ActionOutcome

SUBMIT_SCORE = "submit_score"

# Request parameters
SCORE_PARAM = "score"
REVIEW_PARAM = "review"

# Larger than any configured maximum, so unparsable input always fails validation
INVALID_SCORE = Decimal("Infinity")

_DECIMAL_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def parse_score(raw: Optional[str]) -> Optional[Decimal]:
    """Parse a decimal accepting '.' or ',' as separator.

    None when the text is not a finite number or its magnitude lies outside
    the exponent range of the decimal context.
    """
    if raw is None:
        return None
    text = raw.strip().replace(",", ".")
    if not _DECIMAL_RE.match(text):
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    if value and abs(value.adjusted()) > getcontext().Emax:
        return None
    return value


def format_score(value: Decimal) -> str:
    """Fixed two-decimal rendering, rounding half up, for values of any magnitude."""
    with localcontext() as ctx:
        ctx.rounding = ROUND_HALF_UP
        return format(value, ".2f")


class ScoreReviewActionAdvancedInfo(ActionAdvancedInfo):

    def __init__(self, description_required: bool = False, max_value: Decimal = Decimal("0"),
                 type: Optional[str] = None):
        super().__init__(type)
        self.description_required = description_required
        self.max_value = Decimal(max_value)

    def canonical_string(self, type: str) -> str:
        return (f"{type};descriptionRequired,{format_bool(self.description_required)}"
                f";maxValue,{format_score(self.max_value)}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["descriptionRequired"] = self.description_required
        data["maxValue"] = float(self.max_value)
        return data


class ScoreReviewAction(ProcessingAction):
    """Lets each assigned reviewer rate the item.

    Scores are decimals; integral input such as "8" is still accepted. There
    is no lower bound: only the configured maximum is enforced.
    """

    action_id = "scorereviewaction"

    def __init__(self, metadata: MetadataStore, configuration: ConfigurationService,
                 max_value: Decimal = Decimal("10"), description_required: bool = False):
        self.metadata = metadata
        self.configuration = configuration
        self.max_value = Decimal(max_value)
        self.description_required = description_required

    def activate(self, context: Context, work_item: WorkItem) -> None:
        pass

    def execute(self, context: Context, work_item: WorkItem, step: Step,
                request: ActionRequest) -> ActionOutcome:
        if self.is_option_in_param(request) and \
                request.get_submit_button(SUBMIT_CANCEL).lower() == SUBMIT_SCORE:
            return self._process_set_rating(context, work_item, request)
        return ActionOutcome.cancel()

    def _process_set_rating(self, context: Context, work_item: WorkItem,
                            request: ActionRequest) -> ActionOutcome:
        raw_score = request.get_parameter(SCORE_PARAM)
        score = parse_score(raw_score)
        if score is None:
            if raw_score and raw_score.strip():
                logger.warning(f"Invalid score format received: {raw_score}")
            score = INVALID_SCORE

        review = request.get_parameter(REVIEW_PARAM)
        if not self.check_request_valid(score, review):
            logger.log_score_submitted(work_item.id, str(raw_score), bool(review and review.strip()),
                                       status="rejected")
            return ActionOutcome.error()

        if self.has_scored(work_item, context.user_id):
            logger.warning(f"Reviewer {context.user_id} already scored item {work_item.id}")
            logger.log_score_submitted(work_item.id, str(score), bool(review and review.strip()),
                                       status="duplicate")
            return ActionOutcome.error()

        review_text = f"{format_score(score)} - {review}" if review and review.strip() else None
        self.metadata.add(context, work_item.id, SCORE_FIELD, str(score), authority=context.user_id)
        if review_text:
            self.metadata.add(context, work_item.id, REVIEW_FIELD, review_text, authority=context.user_id)
        self.metadata.update(context, work_item.id)

        logger.log_score_submitted(work_item.id, str(score), bool(review and review.strip()))
        return ActionOutcome.complete()

    def check_request_valid(self, score: Decimal, review: Optional[str]) -> bool:
        """A rating is rejected above the maximum, or without text when text is required."""
        if score > self.max_value:
            logger.error(f"{self.__class__.__name__} only allows max rating {self.max_value}, "
                         f"given rating of {score} not allowed.")
            return False
        if self.description_required and not (review and review.strip()):
            logger.error(f"{self.__class__.__name__} requires a review description, "
                         f"rating requests without '{REVIEW_PARAM}' are not allowed")
            return False
        return True

    def has_scored(self, work_item: WorkItem, person_id: Optional[str]) -> bool:
        """Whether the person already has a score entry on the item; anonymous scores are not tracked."""
        if person_id is None:
            return False
        records = self.metadata.get_records(work_item.id, SCORE_FIELD)
        return any(record.authority == person_id for record in records)

    def get_options(self) -> List[str]:
        options = [SUBMIT_SCORE]
        if self.configuration.get_bool(REVIEWER_FILE_EDIT_KEY, False):
            options.append(SUBMIT_EDIT_METADATA)
        options.append(RETURN_TO_POOL)
        return options

    def get_advanced_options(self) -> List[str]:
        return [SUBMIT_SCORE]

    def get_advanced_info(self) -> List[ActionAdvancedInfo]:
        info = ScoreReviewActionAdvancedInfo(
            description_required=self.description_required,
            max_value=self.max_value,
            type=SUBMIT_SCORE
        )
        info.generate_id(SUBMIT_SCORE)
        return [info]

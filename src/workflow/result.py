"""
Outcome of a processing action.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

OUTCOME_COMPLETE = "complete"


class OutcomeType(Enum):
    OUTCOME = "outcome"
    CANCEL = "cancel"
    ERROR = "error"
    SUBMISSION_PAGE = "submission_page"


@dataclass(frozen=True)
class ActionOutcome:
    """Closed set of results an action can return.

    Only OUTCOME carries a sub-kind; build instances with the class methods
    rather than the constructor.
    """
    type: OutcomeType
    outcome: Optional[str] = None

    def __post_init__(self):
        if self.type is OutcomeType.OUTCOME and not self.outcome:
            raise ValueError("OUTCOME results need an outcome name")
        if self.type is not OutcomeType.OUTCOME and self.outcome is not None:
            raise ValueError(f"{self.type.name} results carry no outcome name")

    @classmethod
    def complete(cls) -> "ActionOutcome":
        return cls(OutcomeType.OUTCOME, OUTCOME_COMPLETE)

    @classmethod
    def of_outcome(cls, outcome: str) -> "ActionOutcome":
        return cls(OutcomeType.OUTCOME, outcome)

    @classmethod
    def cancel(cls) -> "ActionOutcome":
        return cls(OutcomeType.CANCEL)

    @classmethod
    def error(cls) -> "ActionOutcome":
        return cls(OutcomeType.ERROR)

    @classmethod
    def submission_page(cls) -> "ActionOutcome":
        return cls(OutcomeType.SUBMISSION_PAGE)

    @property
    def is_complete(self) -> bool:
        return self.type is OutcomeType.OUTCOME and self.outcome == OUTCOME_COMPLETE

    def __str__(self) -> str:
        if self.outcome:
            return f"{self.type.value}:{self.outcome}"
        return self.type.value

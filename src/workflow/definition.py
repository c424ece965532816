"""
Workflow graph: ordered steps, each bound to one processing action.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

SUBMISSION_STEP = "submission"
ARCHIVED_STEP = "archived"


@dataclass(frozen=True)
class Step:
    id: str
    action_id: str
    next_step_id: Optional[str] = None
    # Review steps stay open until every assigned reviewer has scored
    requires_all_reviewers: bool = False
    reviewer_role_id: str = "reviewer"
    # Automatic steps run their action as soon as they are entered
    automatic: bool = False


@dataclass
class Workflow:
    id: str
    steps: List[Step] = field(default_factory=list)

    def __post_init__(self):
        self._by_id: Dict[str, Step] = {step.id: step for step in self.steps}
        if len(self._by_id) != len(self.steps):
            raise ValueError(f"Workflow {self.id} has duplicate step ids")
        for step in self.steps:
            if step.next_step_id is not None and step.next_step_id not in self._by_id:
                raise ValueError(f"Step {step.id} points to unknown step {step.next_step_id}")

    @property
    def first_step(self) -> Step:
        return self.steps[0]

    def get_step(self, step_id: str) -> Optional[Step]:
        return self._by_id.get(step_id)

    def next_step(self, step: Step) -> Optional[Step]:
        if step.next_step_id is None:
            return None
        return self._by_id[step.next_step_id]


def default_workflow() -> Workflow:
    """Select reviewers, collect their scores, then evaluate the mean."""
    return Workflow(
        id="scoreReviewWorkflow",
        steps=[
            Step(id="selectReviewerStep", action_id="selectrevieweraction", next_step_id="scoreReviewStep"),
            Step(id="scoreReviewStep", action_id="scorereviewaction", next_step_id="evaluationStep",
                 requires_all_reviewers=True),
            Step(id="evaluationStep", action_id="evaluationaction", automatic=True),
        ]
    )

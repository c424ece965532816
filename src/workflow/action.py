"""
Contract shared by every processing action, plus the advanced-info base class.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.context import Context
from ..core.schema import WorkItem
from .definition import Step
from .request import ActionRequest
from .result import ActionOutcome

# Options shared between actions
SUBMIT_CANCEL = "submit_cancel"
RETURN_TO_POOL = "return_to_pool"
SUBMIT_EDIT_METADATA = "submit_edit_metadata"


class ActionAdvancedInfo:
    """Configuration facts about an action, exposed for presentation.

    ``id`` is an md5 fingerprint of a canonical string so clients can notice
    that the configuration changed. It is a cache key, not a security token.
    """

    def __init__(self, type: Optional[str] = None):
        self.type = type
        self.id: Optional[str] = None

    def canonical_string(self, type: str) -> str:
        raise NotImplementedError

    def generate_id(self, type: str) -> str:
        self.id = hashlib.md5(self.canonical_string(type).encode("utf-8")).hexdigest()
        return self.id

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type}


def format_bool(value: bool) -> str:
    return "true" if value else "false"


class ProcessingAction(ABC):
    """A compiled decision step executed at a workflow step."""

    action_id: str = ""

    @abstractmethod
    def activate(self, context: Context, work_item: WorkItem) -> None:
        """Run when the step owning this action is entered."""

    @abstractmethod
    def execute(self, context: Context, work_item: WorkItem, step: Step,
                request: ActionRequest) -> ActionOutcome:
        """Decide the outcome for this request.

        Business conditions are reported through the returned outcome; only
        store failures raise.
        """

    @abstractmethod
    def get_options(self) -> List[str]:
        """Ordered choices the calling layer may present."""

    def get_advanced_options(self) -> List[str]:
        return []

    def get_advanced_info(self) -> List[ActionAdvancedInfo]:
        return []

    def is_advanced(self) -> bool:
        return bool(self.get_advanced_options())

    def is_option_in_param(self, request: ActionRequest) -> bool:
        return any(option in request for option in self.get_options())

    def provenance_start_id(self, step: Step) -> str:
        return f"Step: {step.id} - action: {self.action_id}"

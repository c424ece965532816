"""
Structured logging for workflow actions, role assignments and authorization decisions.
"""

import logging
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for review workflow operations."""

    def __init__(self, name: str = "review_workflow"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.info(message)

    def log_workflow_action(self, action: str, item_id: int, outcome: str, details: Dict[str, Any] = None):
        """Log the outcome of a processing action."""
        log_details = {"item_id": item_id, "outcome": outcome}
        if details:
            log_details.update(details)

        self.log_operation(f"workflow.{action}", outcome, log_details)

    def log_score_submitted(self, item_id: int, score: str, has_review: bool, status: str = "success"):
        """Log a reviewer score submission."""
        log_details = {
            "item_id": item_id,
            "score": score,
            "has_review": has_review
        }
        self.log_operation("score.submitted", status, log_details)

    def log_score_evaluation(self, item_id: int, mean: str, threshold: str, passed: bool, valid_scores: int):
        """Log the result of a score evaluation."""
        log_details = {
            "item_id": item_id,
            "mean": mean,
            "threshold": threshold,
            "valid_scores": valid_scores
        }
        self.log_operation("score.evaluated", "passed" if passed else "rejected", log_details)

    def log_role_assignment(self, item_id: int, role_id: str, person_id: str = None, group_id: str = None,
                            status: str = "assigned"):
        """Log a role assignment change."""
        log_details = {"item_id": item_id, "role_id": role_id}
        if person_id is not None:
            log_details["person_id"] = person_id
        if group_id is not None:
            log_details["group_id"] = group_id

        self.log_operation("role.assignment", status, log_details)

    def log_authorization_decision(self, actor: str, target_id: str, permission: str, granted: bool,
                                   reason: str = ""):
        """Log a permission decision."""
        log_details = {
            "actor": actor or "anonymous",
            "target_id": target_id,
            "permission": permission,
            "reason": reason[:100] if reason else ""
        }
        self.log_operation("authorization.decision", "granted" if granted else "denied", log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None,
                sensitive_fields: List[str] = None):
    """General audit event logging with privacy controls."""
    if sensitive_fields is None:
        sensitive_fields = ['secret', 'password', 'token']

    log_details = identifiers.copy() if identifiers else {}

    if payload:
        log_details["payload"] = sanitize_payload(payload, sensitive_fields=sensitive_fields)

    # Determine operation type from event_type
    if event_type.startswith("workflow"):
        operation = "workflow"
    elif event_type.startswith("provenance"):
        operation = "provenance"
    elif event_type.startswith("authorization"):
        operation = "authorization"
    else:
        operation = event_type.replace(".", "_")

    logger.log_operation(operation, "audit", log_details)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for audit logging."""
    if sensitive_fields is None:
        sensitive_fields = ['secret', 'password', 'token']

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload

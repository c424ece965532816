"""
Configuration for the review workflow core.

Process settings are read from the environment once at import time. Named
workflow properties go through ConfigurationService so they can be overridden
per process (and per test) without touching the environment.
"""

import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, List, Optional

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/workflow.db")

# Debug flag
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Version string
VERSION = "1.0.0"

# Workflow property keys
REVIEWER_GROUP_KEY = "action.selectrevieweraction.group"
REVIEWER_FILE_EDIT_KEY = "workflow.reviewer.file-edit"
MAX_SCORE_KEY = "action.scorereviewaction.max-value"
DESCRIPTION_REQUIRED_KEY = "action.scorereviewaction.description-required"
MINIMUM_ACCEPTANCE_KEY = "action.evaluationaction.minimum-acceptance-score"
COMMUNITY_ADMIN_ACCOUNTS_KEY = "core.authorization.community-admin.account-management"
COLLECTION_ADMIN_ACCOUNTS_KEY = "core.authorization.collection-admin.account-management"

# Defaults
DEFAULT_MAX_SCORE = "10"
DEFAULT_MINIMUM_ACCEPTANCE = "5"
DEFAULT_REVIEWER_GROUP_NAME = "Professores"
REVIEW_MANAGERS_GROUP = "reviewmanagers"
ADMIN_GROUP = "Administrator"


def env_name(key: str) -> str:
    """Map a dotted property key to its environment variable name."""
    return key.upper().replace(".", "_").replace("-", "_")


class ConfigurationService:
    """Property lookup: overrides first, then environment, then the caller's default."""

    def __init__(self, overrides: Optional[Dict[str, str]] = None):
        self._overrides: Dict[str, str] = dict(overrides or {})

    def set_property(self, key: str, value: Optional[str]) -> None:
        """Override a property; None removes the override."""
        if value is None:
            self._overrides.pop(key, None)
        else:
            self._overrides[key] = str(value)

    def get_property(self, key: str, default: Optional[str] = None) -> Optional[str]:
        if key in self._overrides:
            return self._overrides[key]
        value = os.getenv(env_name(key))
        if value is None:
            return default
        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get_property(key)
        if value is None or not value.strip():
            return default
        return value.strip().lower() in ("true", "yes", "on", "1")

    def get_decimal(self, key: str, default: str) -> Decimal:
        """Read a finite decimal property, accepting ',' as the decimal separator.

        Unparsable, infinite or NaN values fall back to the default.
        """
        value = self.get_property(key, default)
        try:
            number = Decimal(value.strip().replace(",", "."))
        except (InvalidOperation, AttributeError):
            return Decimal(default)
        if not number.is_finite():
            return Decimal(default)
        return number


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def ensure_db_directory():
    """Ensure the database directory exists."""
    Path(DB_PATH).parent.mkdir(parents=True, exist_ok=True)


def validate_workflow_config(configuration: ConfigurationService) -> List[str]:
    """Validate workflow properties and return any issues."""
    issues = []
    numbers = {}

    for key, default in ((MAX_SCORE_KEY, DEFAULT_MAX_SCORE), (MINIMUM_ACCEPTANCE_KEY, DEFAULT_MINIMUM_ACCEPTANCE)):
        raw = configuration.get_property(key, default)
        try:
            value = Decimal(raw.strip().replace(",", "."))
        except (InvalidOperation, AttributeError):
            issues.append(f"Invalid {key}: {raw}")
            continue
        if not value.is_finite():
            issues.append(f"Invalid {key}: {raw}")
            continue
        numbers[key] = value

    if len(numbers) == 2 and numbers[MINIMUM_ACCEPTANCE_KEY] > numbers[MAX_SCORE_KEY]:
        issues.append(f"{MINIMUM_ACCEPTANCE_KEY} must be <= {MAX_SCORE_KEY}")

    return issues

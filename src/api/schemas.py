"""
Request and response models for the review workflow API.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    config_issues: List[str] = []


class ActionRequestBody(BaseModel):
    parameters: Dict[str, List[str]] = {}

    @field_validator('parameters')
    @classmethod
    def parameter_names_must_not_be_empty(cls, v):
        for name in v:
            if not name.strip():
                raise ValueError('parameter names cannot be empty')
        return v


class ActionOutcomeResponse(BaseModel):
    item_id: int
    type: str
    outcome: Optional[str] = None
    step_id: str
    active: bool


class ActionOptionsResponse(BaseModel):
    item_id: int
    step: str
    action: str
    options: List[str]
    advanced_options: List[str]
    advanced_info: List[Dict[str, Any]]


class PersonResponse(BaseModel):
    id: str
    email: str
    name: Optional[str] = None


class GroupResponse(BaseModel):
    id: str
    name: Optional[str] = None
    permanent: bool = False


class GroupMembersResponse(BaseModel):
    group_id: str
    members: List[PersonResponse]
    total: int
    offset: int
    limit: int

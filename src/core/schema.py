"""
Records held by the workflow stores.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

# Wildcard language for metadata lookups
ANY = "*"


@dataclass(frozen=True)
class MetadataField:
    schema: str
    element: str
    qualifier: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.schema, self.element]
        if self.qualifier:
            parts.append(self.qualifier)
        return ".".join(parts)


SCORE_FIELD = MetadataField("workflow", "score")
REVIEW_FIELD = MetadataField("workflow", "review")
PROVENANCE_FIELD = MetadataField("dc", "description", "provenance")

# Fields only writable by administrators or inside an elevated scope
PROTECTED_FIELDS = {PROVENANCE_FIELD}


@dataclass
class Person:
    id: str
    email: str
    name: Optional[str] = None


@dataclass
class Group:
    id: str
    name: Optional[str]
    permanent: bool = False


@dataclass
class WorkItem:
    id: int
    submitter_id: Optional[str]
    step_id: str
    active: bool = True
    last_modified: Optional[datetime] = None


@dataclass
class MetadataRecord:
    item_id: int
    field: MetadataField
    value: str
    language: Optional[str] = None
    place: int = 0
    # Person who entered the value, when recorded
    authority: Optional[str] = None


@dataclass
class RoleAssignment:
    """Binds a role on a work item to a person or to a group, never both."""
    id: Optional[int]
    item_id: int
    role_id: str
    person_id: Optional[str] = None
    group_id: Optional[str] = None

    def bind_person(self, person: Person) -> None:
        self.person_id = person.id
        self.group_id = None

    def bind_group(self, group: Group) -> None:
        self.group_id = group.id
        self.person_id = None


@dataclass
class WorkflowEvent:
    id: int
    item_id: int
    ts: datetime
    actor: Optional[str]
    action: str
    payload: str


@dataclass
class MemberPage:
    members: List[Person] = field(default_factory=list)
    total: int = 0

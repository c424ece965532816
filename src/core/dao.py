"""
SQLite-backed stores consumed by the workflow actions and the permission evaluator.

Every method opens its own connection through get_db(); sqlite failures surface
as StoreError and are never swallowed here.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from .context import Context
from .db import get_db
from .schema import (
    ANY,
    PROTECTED_FIELDS,
    Group,
    MetadataField,
    MetadataRecord,
    Person,
    RoleAssignment,
    WorkflowEvent,
    WorkItem,
)


def _parse_ts(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


class MetadataStore:
    """Multi-valued metadata per (schema, element, qualifier), insertion order preserved."""

    def get(self, item_id: int, field: MetadataField, language: Optional[str] = ANY) -> List[str]:
        return [record.value for record in self.get_records(item_id, field, language)]

    def get_records(self, item_id: int, field: MetadataField,
                    language: Optional[str] = ANY) -> List[MetadataRecord]:
        query = ("SELECT value, language, place, authority FROM metadata "
                 "WHERE item_id = ? AND schema_name = ? AND element = ? AND qualifier IS ?")
        params = [item_id, field.schema, field.element, field.qualifier]
        if language != ANY:
            query += " AND language IS ?"
            params.append(language)
        query += " ORDER BY place, id"

        with get_db() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            MetadataRecord(item_id=item_id, field=field, value=value, language=lang, place=place,
                           authority=authority)
            for value, lang, place, authority in rows
        ]

    def add(self, context: Context, item_id: int, field: MetadataField, value: str,
            language: Optional[str] = None, authority: Optional[str] = None) -> MetadataRecord:
        if field in PROTECTED_FIELDS:
            context.check_privileged(f"metadata.add:{field}")

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COALESCE(MAX(place), -1) + 1 FROM metadata WHERE item_id = ?", (item_id,))
            place = cursor.fetchone()[0]
            cursor.execute(
                "INSERT INTO metadata (item_id, schema_name, element, qualifier, language, value, authority, place) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (item_id, field.schema, field.element, field.qualifier, language, value, authority, place)
            )
            conn.commit()

        return MetadataRecord(item_id=item_id, field=field, value=value, language=language, place=place,
                              authority=authority)

    def clear(self, context: Context, item_id: int, field: MetadataField,
              language: Optional[str] = ANY) -> int:
        """Remove every value of a field; returns the number of rows removed."""
        if field in PROTECTED_FIELDS:
            context.check_privileged(f"metadata.clear:{field}")

        query = ("DELETE FROM metadata "
                 "WHERE item_id = ? AND schema_name = ? AND element = ? AND qualifier IS ?")
        params = [item_id, field.schema, field.element, field.qualifier]
        if language != ANY:
            query += " AND language IS ?"
            params.append(language)

        with get_db() as conn:
            cursor = conn.execute(query, params)
            conn.commit()
            return cursor.rowcount

    def update(self, context: Context, item_id: int) -> None:
        """Mark the item as modified after a batch of metadata writes."""
        with get_db() as conn:
            conn.execute("UPDATE work_items SET last_modified = CURRENT_TIMESTAMP WHERE id = ?", (item_id,))
            conn.commit()


class IdentityStore:
    """People, groups and direct group membership."""

    def create_person(self, email: str, name: Optional[str] = None, person_id: Optional[str] = None) -> Person:
        person = Person(id=person_id or str(uuid.uuid4()), email=email, name=name)
        with get_db() as conn:
            conn.execute("INSERT INTO persons (id, email, name) VALUES (?, ?, ?)",
                         (person.id, person.email, person.name))
            conn.commit()
        return person

    def find_person(self, person_id: str) -> Optional[Person]:
        with get_db() as conn:
            row = conn.execute("SELECT id, email, name FROM persons WHERE id = ?", (person_id,)).fetchone()
        if row:
            return Person(id=row[0], email=row[1], name=row[2])
        return None

    def find_group(self, group_id: str) -> Optional[Group]:
        with get_db() as conn:
            row = conn.execute("SELECT id, name, permanent FROM groups WHERE id = ?", (group_id,)).fetchone()
        if row:
            return Group(id=row[0], name=row[1], permanent=bool(row[2]))
        return None

    def find_group_by_name(self, name: str) -> Optional[Group]:
        if not name:
            return None
        with get_db() as conn:
            row = conn.execute("SELECT id, name, permanent FROM groups WHERE name = ?", (name,)).fetchone()
        if row:
            return Group(id=row[0], name=row[1], permanent=bool(row[2]))
        return None

    def create_group(self, context: Context, name: Optional[str] = None, permanent: bool = False) -> Group:
        context.check_privileged("group.create")
        group = Group(id=str(uuid.uuid4()), name=name, permanent=permanent)
        with get_db() as conn:
            conn.execute("INSERT INTO groups (id, name, permanent) VALUES (?, ?, ?)",
                         (group.id, group.name, group.permanent))
            conn.commit()
        return group

    def set_name(self, context: Context, group: Group, name: str) -> None:
        context.check_privileged("group.set_name")
        with get_db() as conn:
            conn.execute("UPDATE groups SET name = ? WHERE id = ?", (name, group.id))
            conn.commit()
        group.name = name

    def add_member(self, context: Context, group: Group, person: Person) -> None:
        context.check_privileged("group.add_member")
        with get_db() as conn:
            conn.execute("INSERT OR IGNORE INTO group_members (group_id, person_id) VALUES (?, ?)",
                         (group.id, person.id))
            conn.commit()

    def clear_members(self, context: Context, group: Group) -> None:
        context.check_privileged("group.clear_members")
        with get_db() as conn:
            conn.execute("DELETE FROM group_members WHERE group_id = ?", (group.id,))
            conn.commit()

    def is_member(self, person: Optional[Person], group: Optional[Group]) -> bool:
        if person is None or group is None:
            return False
        with get_db() as conn:
            row = conn.execute("SELECT 1 FROM group_members WHERE group_id = ? AND person_id = ?",
                               (group.id, person.id)).fetchone()
        return row is not None

    def is_member_of_any(self, person: Optional[Person], name_pattern: str) -> bool:
        """Direct membership in any group whose name matches a SQL LIKE pattern."""
        if person is None:
            return False
        with get_db() as conn:
            row = conn.execute(
                "SELECT 1 FROM group_members gm JOIN groups g ON g.id = gm.group_id "
                "WHERE gm.person_id = ? AND g.name LIKE ? ESCAPE '\\' LIMIT 1",
                (person.id, name_pattern)
            ).fetchone()
        return row is not None

    def all_members(self, group: Group, offset: int = 0, limit: Optional[int] = None) -> List[Person]:
        query = ("SELECT p.id, p.email, p.name FROM persons p "
                 "JOIN group_members gm ON gm.person_id = p.id WHERE gm.group_id = ? ORDER BY p.email, p.id")
        params = [group.id]
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        elif offset:
            query += " LIMIT -1 OFFSET ?"
            params.append(offset)

        with get_db() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Person(id=r[0], email=r[1], name=r[2]) for r in rows]

    def count_members(self, group: Group) -> int:
        with get_db() as conn:
            return conn.execute("SELECT COUNT(*) FROM group_members WHERE group_id = ?",
                                (group.id,)).fetchone()[0]


class RoleAssignmentStore:
    """Role bindings per work item; the table allows one row per (item, role)."""

    def find_by_item(self, item_id: int) -> List[RoleAssignment]:
        with get_db() as conn:
            rows = conn.execute(
                "SELECT id, item_id, role_id, person_id, group_id FROM role_assignments WHERE item_id = ? ORDER BY id",
                (item_id,)
            ).fetchall()
        return [RoleAssignment(id=r[0], item_id=r[1], role_id=r[2], person_id=r[3], group_id=r[4]) for r in rows]

    def find(self, item_id: int, role_id: str) -> Optional[RoleAssignment]:
        for assignment in self.find_by_item(item_id):
            if assignment.role_id == role_id:
                return assignment
        return None

    def create(self, item_id: int, role_id: str) -> RoleAssignment:
        with get_db() as conn:
            cursor = conn.execute("INSERT INTO role_assignments (item_id, role_id) VALUES (?, ?)",
                                  (item_id, role_id))
            conn.commit()
            return RoleAssignment(id=cursor.lastrowid, item_id=item_id, role_id=role_id)

    def update(self, assignment: RoleAssignment) -> None:
        with get_db() as conn:
            conn.execute("UPDATE role_assignments SET person_id = ?, group_id = ? WHERE id = ?",
                         (assignment.person_id, assignment.group_id, assignment.id))
            conn.commit()

    def delete_by_item(self, item_id: int) -> int:
        with get_db() as conn:
            cursor = conn.execute("DELETE FROM role_assignments WHERE item_id = ?", (item_id,))
            conn.commit()
            return cursor.rowcount


class WorkItemStore:
    """Work items moving through the workflow."""

    _COLUMNS = "id, submitter_id, step_id, active, last_modified"

    def _row_to_item(self, row) -> WorkItem:
        return WorkItem(id=row[0], submitter_id=row[1], step_id=row[2], active=bool(row[3]),
                        last_modified=_parse_ts(row[4]))

    def create(self, submitter_id: Optional[str], step_id: str) -> WorkItem:
        with get_db() as conn:
            cursor = conn.execute("INSERT INTO work_items (submitter_id, step_id) VALUES (?, ?)",
                                  (submitter_id, step_id))
            conn.commit()
            item_id = cursor.lastrowid
        return self.find(item_id)

    def find(self, item_id: int) -> Optional[WorkItem]:
        with get_db() as conn:
            row = conn.execute(f"SELECT {self._COLUMNS} FROM work_items WHERE id = ?", (item_id,)).fetchone()
        return self._row_to_item(row) if row else None

    def find_by_submitter(self, person: Optional[Person]) -> List[WorkItem]:
        """Active work items submitted by the person."""
        if person is None:
            return []
        with get_db() as conn:
            rows = conn.execute(
                f"SELECT {self._COLUMNS} FROM work_items WHERE submitter_id = ? AND active ORDER BY id",
                (person.id,)
            ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def set_step(self, item: WorkItem, step_id: str) -> None:
        with get_db() as conn:
            conn.execute("UPDATE work_items SET step_id = ?, last_modified = CURRENT_TIMESTAMP WHERE id = ?",
                         (step_id, item.id))
            conn.commit()
        item.step_id = step_id

    def deactivate(self, item: WorkItem, step_id: str) -> None:
        """Take the item out of the workflow, parking it at step_id."""
        with get_db() as conn:
            conn.execute(
                "UPDATE work_items SET step_id = ?, active = FALSE, last_modified = CURRENT_TIMESTAMP WHERE id = ?",
                (step_id, item.id)
            )
            conn.commit()
        item.step_id = step_id
        item.active = False


class WorkflowEventStore:
    """Append-only log of workflow transitions."""

    def add_event(self, item_id: int, actor: Optional[str], action: str, payload: str = "") -> None:
        with get_db() as conn:
            conn.execute("INSERT INTO workflow_events (item_id, actor, action, payload) VALUES (?, ?, ?, ?)",
                         (item_id, actor, action, payload))
            conn.commit()

    def list_events(self, item_id: int) -> List[WorkflowEvent]:
        with get_db() as conn:
            rows = conn.execute(
                "SELECT id, item_id, ts, actor, action, payload FROM workflow_events WHERE item_id = ? ORDER BY id",
                (item_id,)
            ).fetchall()
        return [WorkflowEvent(id=r[0], item_id=r[1], ts=_parse_ts(r[2]), actor=r[3], action=r[4], payload=r[5])
                for r in rows]

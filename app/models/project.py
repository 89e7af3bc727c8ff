from decimal import Decimal
from typing import Any

from app.utils.db import Database
from app.utils.ids import is_uuid

PROJECT_COLS = [
    "id",
    "title",
    "description",
    "goal",
    "current_funding",
    "start_date",
    "end_date",
    "status",
    "created_at",
    "updated_at",
]


def get_project(db: Database, project_id: str) -> dict[str, Any] | None:
    if not is_uuid(project_id):
        return None
    sql = f"SELECT {', '.join(PROJECT_COLS)} FROM projects WHERE id = %s"
    with db.cursor() as cur:
        cur.execute(sql, (project_id,))
        row = cur.fetchone()
        if not row:
            return None
        return dict(zip(PROJECT_COLS, row))


def get_goal_and_funding(db: Database, project_id: str) -> tuple[Decimal, Decimal] | None:
    if not is_uuid(project_id):
        return None
    sql = "SELECT goal, current_funding FROM projects WHERE id = %s"
    with db.cursor() as cur:
        cur.execute(sql, (project_id,))
        row = cur.fetchone()
        if not row:
            return None
        return (row[0], row[1])


def increment_current_funding(cur, project_id: str, amount: Decimal) -> Decimal | None:
    """
    Add amount to projects.current_funding inside the caller's transaction.
    Returns the new total, or None if the project row does not exist.
    """
    cur.execute(
        """
        UPDATE projects
           SET current_funding = current_funding + %s,
               updated_at = now()
         WHERE id = %s
        RETURNING current_funding
        """,
        (amount, project_id),
    )
    row = cur.fetchone()
    return row[0] if row else None


def serialize_project(p: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": str(p["id"]),
        "title": p["title"],
        "description": p.get("description"),
        "goal": float(p["goal"]),
        "currentFunding": float(p["current_funding"]),
        "startDate": p["start_date"].isoformat() if p.get("start_date") else None,
        "endDate": p["end_date"].isoformat() if p.get("end_date") else None,
        "status": p["status"],
        "createdAt": p["created_at"].isoformat() if p.get("created_at") else None,
        "updatedAt": p["updated_at"].isoformat() if p.get("updated_at") else None,
    }

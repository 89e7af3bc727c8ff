from decimal import Decimal
from typing import Any, Dict, List

from psycopg2 import errors as pg_errors

from app.errors import ConflictError, NotFoundError
from app.models.project import increment_current_funding
from app.utils.db import Database
from app.utils.ids import is_uuid
from app.utils.masking import mask_email

DONATION_COLS = [
    "id",
    "amount",
    "project_id",
    "donor_name",
    "donor_email",
    "user_id",
    "stripe_session_id",
    "status",
    "created_at",
]
_SELECT_DONATION = f"SELECT {', '.join(DONATION_COLS)} FROM donations"


def _row(row) -> dict[str, Any]:
    d = dict(zip(DONATION_COLS, row))
    for k in ("id", "project_id", "user_id"):
        if d[k] is not None:
            d[k] = str(d[k])
    return d


def get_donation_by_session(db: Database, session_ref: str) -> dict[str, Any] | None:
    with db.cursor() as cur:
        cur.execute(f"{_SELECT_DONATION} WHERE stripe_session_id = %s", (session_ref,))
        row = cur.fetchone()
        return _row(row) if row else None


def insert_donation(
    cur,
    *,
    amount: Decimal,
    project_id: str,
    donor_name: str,
    donor_email: str,
    user_id: str | None,
    stripe_session_id: str,
    status: str = "completed",
) -> dict[str, Any]:
    """
    Insert one ledger row inside the caller's transaction. The unique index on
    stripe_session_id raises UniqueViolation for a second row per session.
    """
    sql = f"""
    INSERT INTO donations (amount, project_id, donor_name, donor_email, user_id, stripe_session_id, status)
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    RETURNING {', '.join(DONATION_COLS)}
    """
    cur.execute(
        sql,
        (amount, project_id, donor_name, donor_email, user_id, stripe_session_id, status),
    )
    return _row(cur.fetchone())


def record_completed_donation(
    db: Database,
    *,
    amount: Decimal,
    project_id: str,
    donor_name: str,
    donor_email: str,
    user_id: str | None,
    stripe_session_id: str,
) -> tuple[dict[str, Any], Decimal]:
    """
    Insert a completed donation and add its amount to the project's
    current_funding in one transaction.

    Returns (donation, new current_funding). Raises ConflictError when a row
    for stripe_session_id already exists; nothing is written in that case.
    """
    try:
        with db.cursor() as cur:
            donation = insert_donation(
                cur,
                amount=amount,
                project_id=project_id,
                donor_name=donor_name,
                donor_email=donor_email,
                user_id=user_id,
                stripe_session_id=stripe_session_id,
                status="completed",
            )
            total = increment_current_funding(cur, project_id, amount)
            if total is None:
                raise NotFoundError("project not found")
            return donation, total
    except pg_errors.UniqueViolation as e:
        raise ConflictError(f"donation already recorded for {stripe_session_id}") from e
    except pg_errors.ForeignKeyViolation as e:
        raise NotFoundError("referenced project or user no longer exists") from e


def list_donations_for_user(db: Database, user_id: str) -> List[Dict[str, Any]]:
    if not is_uuid(user_id):
        return []
    sql = """
      SELECT d.id, d.amount, d.project_id, d.donor_name, d.donor_email, d.user_id,
             d.stripe_session_id, d.status, d.created_at,
             p.title, p.description, p.status
      FROM donations d
      JOIN projects p ON p.id = d.project_id
      WHERE d.user_id = %s
      ORDER BY d.created_at DESC
    """
    with db.cursor() as cur:
        cur.execute(sql, (user_id,))
        rows = cur.fetchall()
        out = []
        for r in rows:
            d = _row(r[: len(DONATION_COLS)])
            title, description, status = r[len(DONATION_COLS) :]
            d["project"] = {
                "id": d["project_id"],
                "title": title,
                "description": description,
                "status": status,
            }
            out.append(d)
        return out


def list_recent_completed(
    db: Database, *, project_id: str | None = None, limit: int = 10
) -> List[Dict[str, Any]]:
    where, params = ["d.status = 'completed'"], []
    if project_id:
        where.append("d.project_id = %s")
        params.append(project_id)
    params.append(limit)
    sql = f"""
      SELECT d.id, d.amount, d.project_id, d.donor_name, d.donor_email, d.user_id,
             d.stripe_session_id, d.status, d.created_at, p.title
      FROM donations d
      JOIN projects p ON p.id = d.project_id
      WHERE {' AND '.join(where)}
      ORDER BY d.created_at DESC
      LIMIT %s
    """
    with db.cursor() as cur:
        cur.execute(sql, tuple(params))
        rows = cur.fetchall()
        out = []
        for r in rows:
            d = _row(r[: len(DONATION_COLS)])
            d["project"] = {"id": d["project_id"], "title": r[len(DONATION_COLS)]}
            out.append(d)
        return out


def donation_stats(db: Database, *, project_id: str | None = None) -> dict[str, Any]:
    """
    Totals over completed donations. A donor is the user id when the donation
    was made signed in, otherwise the lower-cased email.
    """
    where, params = ["status = 'completed'"], []
    if project_id:
        where.append("project_id = %s")
        params.append(project_id)
    sql = f"""
      SELECT COALESCE(SUM(amount), 0),
             COUNT(id)::int,
             COALESCE(AVG(amount), 0),
             COUNT(DISTINCT COALESCE(user_id::text, LOWER(donor_email::text)))::int
      FROM donations
      WHERE {' AND '.join(where)}
    """
    with db.cursor() as cur:
        cur.execute(sql, tuple(params))
        total, count, avg, donors = cur.fetchone()
        return {
            "total_amount": total,
            "donation_count": count,
            "average_donation": avg,
            "unique_donors": donors,
        }


def serialize_donation(d: dict[str, Any], *, mask: bool = False) -> dict[str, Any]:
    out = {
        "id": d["id"],
        "amount": float(d["amount"]),
        "projectId": d["project_id"],
        "donorName": d.get("donor_name"),
        "donorEmail": mask_email(d.get("donor_email")) if mask else d.get("donor_email"),
        "userId": d.get("user_id"),
        "stripeSessionId": d.get("stripe_session_id"),
        "status": d["status"],
        "createdAt": d["created_at"].isoformat() if d.get("created_at") else None,
    }
    if mask:
        out.pop("stripeSessionId")
        out.pop("userId")
    if "project" in d:
        out["project"] = d["project"]
    return out

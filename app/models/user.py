from app.utils.db import Database
from app.utils.ids import is_uuid


def user_exists(db: Database, user_id: str) -> bool:
    if not is_uuid(user_id):
        return False
    with db.cursor() as cur:
        cur.execute("SELECT 1 FROM users WHERE id = %s", (user_id,))
        return cur.fetchone() is not None

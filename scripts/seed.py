#!/usr/bin/env python3
"""
Seed database with an admin user and sample projects.

Usage: python scripts/seed.py [--force]
Requires: migrations applied (alembic upgrade head)
"""
import os
import sys

# Ensure app is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import bcrypt
from dotenv import load_dotenv

from app.utils.db import Database, dsn_from_env

ADMIN_EMAIL = "admin@hopelink.org"
ADMIN_PASSWORD = "Admin123!"

SAMPLE_PROJECTS = [
    (
        "Clean Water Initiative",
        "Providing clean drinking water to underserved communities in rural areas.",
        50000,
        12500,
        "2024-01-01",
        "2024-12-31",
    ),
    (
        "Education for All",
        "Building schools and providing educational resources to children in need.",
        75000,
        23000,
        "2024-02-01",
        "2024-11-30",
    ),
    (
        "Emergency Food Relief",
        "Distributing food packages to families facing food insecurity.",
        25000,
        18750,
        "2024-01-15",
        "2024-06-30",
    ),
    (
        "Medical Supply Drive",
        "Collecting and distributing essential medical supplies to health clinics.",
        40000,
        5200,
        "2024-03-01",
        "2024-09-30",
    ),
]


def _hash(pw: str) -> str:
    return bcrypt.hashpw(pw.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def seed(db: Database):
    with db.cursor() as cur:
        # 1. Admin user
        cur.execute("SELECT id, role FROM users WHERE email = %s", (ADMIN_EMAIL,))
        row = cur.fetchone()
        if row is None:
            cur.execute(
                """
                INSERT INTO users (name, email, password_hash, role)
                VALUES ('Admin User', %s, %s, 'ADMIN')
                """,
                (ADMIN_EMAIL, _hash(ADMIN_PASSWORD)),
            )
            print(f"Created admin user: {ADMIN_EMAIL} / {ADMIN_PASSWORD}")
        elif row[1] != "ADMIN":
            cur.execute("UPDATE users SET role = 'ADMIN', updated_at = now() WHERE id = %s", (row[0],))
            print(f"Updated {ADMIN_EMAIL} to admin role")
        else:
            print(f"Admin user already exists: {ADMIN_EMAIL}")

        # 2. Sample projects, only into an empty table
        cur.execute("SELECT COUNT(*) FROM projects")
        count = cur.fetchone()[0]
        if count:
            print(f"{count} projects already exist in database")
            return

        for title, description, goal, funding, start, end in SAMPLE_PROJECTS:
            cur.execute(
                """
                INSERT INTO projects (title, description, goal, current_funding, start_date, end_date, status)
                VALUES (%s, %s, %s, %s, %s, %s, 'active')
                RETURNING id
                """,
                (title, description, goal, funding, start, end),
            )
            print(f"  {cur.fetchone()[0]}  {title}")
        print(f"Created {len(SAMPLE_PROJECTS)} sample projects")


def force_seed(db: Database):
    """Clear sample data and re-seed. Use with caution."""
    titles = [p[0] for p in SAMPLE_PROJECTS]
    with db.cursor() as cur:
        cur.execute(
            "DELETE FROM donations WHERE project_id IN (SELECT id FROM projects WHERE title = ANY(%s))",
            (titles,),
        )
        cur.execute("DELETE FROM projects WHERE title = ANY(%s)", (titles,))
        cur.execute("DELETE FROM users WHERE email = %s", (ADMIN_EMAIL,))
    print("Cleared sample data. Seeding...")
    seed(db)


if __name__ == "__main__":
    load_dotenv(override=False)
    db = Database(dsn_from_env(), minconn=1, maxconn=1).open()
    try:
        if "--force" in sys.argv:
            force_seed(db)
        else:
            seed(db)
    finally:
        db.close()

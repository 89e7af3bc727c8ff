"""users and projects

Revision ID: 0001_users_projects
Revises:
Create Date: 2025-01-06

"""

from alembic import op

revision = "0001_users_projects"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute(
        """
    CREATE EXTENSION IF NOT EXISTS "pgcrypto";
    CREATE EXTENSION IF NOT EXISTS "citext";

    DO $$
    BEGIN
      IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'user_role') THEN
        CREATE TYPE user_role AS ENUM ('ADMIN','MANAGER','DONOR','GUEST');
      END IF;
      IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'project_status') THEN
        CREATE TYPE project_status AS ENUM ('draft','active','completed','cancelled');
      END IF;
    END$$;

    CREATE TABLE IF NOT EXISTS users (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      name TEXT NULL,
      email CITEXT NOT NULL UNIQUE,
      password_hash TEXT NULL,
      role user_role NOT NULL DEFAULT 'DONOR',
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );

    CREATE TABLE IF NOT EXISTS projects (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      title TEXT NOT NULL,
      description TEXT NULL,
      goal NUMERIC(12,2) NOT NULL CHECK (goal > 0),
      current_funding NUMERIC(12,2) NOT NULL DEFAULT 0 CHECK (current_funding >= 0),
      start_date DATE NOT NULL DEFAULT CURRENT_DATE,
      end_date DATE NULL,
      status project_status NOT NULL DEFAULT 'draft',
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS idx_projects_status ON projects(status, created_at);
    """
    )


def downgrade():
    op.execute(
        """
    DROP TABLE IF EXISTS projects;
    DROP TABLE IF EXISTS users;
    DROP TYPE IF EXISTS project_status;
    DROP TYPE IF EXISTS user_role;
    """
    )

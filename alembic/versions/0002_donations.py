"""donations ledger

Revision ID: 0002_donations
Revises: 0001_users_projects
Create Date: 2025-01-08

stripe_session_id is UNIQUE: it is what keeps the polling endpoint and the
webhook from both recording the same payment.
"""

from alembic import op

revision = "0002_donations"
down_revision = "0001_users_projects"
branch_labels = None
depends_on = None


def upgrade():
    op.execute(
        """
    DO $$
    BEGIN
      IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'donation_status') THEN
        CREATE TYPE donation_status AS ENUM ('pending','completed','failed');
      END IF;
    END$$;

    CREATE TABLE IF NOT EXISTS donations (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      amount NUMERIC(12,2) NOT NULL CHECK (amount >= 1.00),
      project_id UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
      donor_name TEXT NOT NULL,
      donor_email CITEXT NOT NULL,
      user_id UUID NULL REFERENCES users(id) ON DELETE SET NULL,
      stripe_session_id TEXT NULL,
      status donation_status NOT NULL DEFAULT 'pending',
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      CONSTRAINT uq_donations_stripe_session_id UNIQUE (stripe_session_id)
    );

    CREATE INDEX IF NOT EXISTS idx_donations_project ON donations(project_id, created_at);
    CREATE INDEX IF NOT EXISTS idx_donations_user    ON donations(user_id, created_at);
    """
    )


def downgrade():
    op.execute(
        """
    DROP TABLE IF EXISTS donations;
    DROP TYPE IF EXISTS donation_status;
    """
    )

"""draft cleanup index covers every draft

Revision ID: 20261016_03
Revises: 20261016_02
Create Date: 2026-10-16 00:00:00.000000

"""
from alembic import op


# revision identifiers, used by Alembic.
revision = "20261016_03"
down_revision = "20261016_02"
branch_labels = None
depends_on = None


def upgrade():
    # Emptiness is decided on the tracks list, so track_count stays out of the predicate.
    op.execute("DROP INDEX IF EXISTS ix_playlists_draft_cleanup")
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_playlists_draft_cleanup "
        "ON playlists (last_activity) "
        "WHERE is_draft"
    )


def downgrade():
    op.execute("DROP INDEX IF EXISTS ix_playlists_draft_cleanup")
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_playlists_draft_cleanup "
        "ON playlists (last_activity) "
        "WHERE is_draft AND track_count = 0"
    )

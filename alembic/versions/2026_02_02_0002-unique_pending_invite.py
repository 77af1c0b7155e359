"""unique_pending_invite

Revision ID: 8d4e2b6c1a37
Revises: 3f1c9a7d2b10
Create Date: 2026-02-02 00:02:00.000000

Allows at most one unaccepted invite per (tenant, email). Lapsed invites
are retired first so the index can be built on existing data.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "8d4e2b6c1a37"
down_revision: Union[str, None] = "3f1c9a7d2b10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.execute(
        "UPDATE invite_tokens SET used = true WHERE used = false AND expires_at <= now()"
    )
    # Keep only the newest live invite per address
    op.execute(
        """
        UPDATE invite_tokens SET used = true
        WHERE used = false AND id NOT IN (
            SELECT DISTINCT ON (tenant_id, email) id
            FROM invite_tokens
            WHERE used = false
            ORDER BY tenant_id, email, created_at DESC
        )
        """
    )
    op.create_index(
        "uq_invite_tokens_pending_email",
        "invite_tokens",
        ["tenant_id", "email"],
        unique=True,
        postgresql_where=sa.text("used = false"),
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("uq_invite_tokens_pending_email", table_name="invite_tokens")

"""Create clicks table.

Revision ID: 002_create_clicks
Revises: 001_create_banners
Create Date: 2025-01-27

Clicks cascade with their banner on delete and update. The composite
(banner_id, timestamp) index serves per-banner range and histogram queries.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "002_create_clicks"
down_revision: str | None = "001_create_banners"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "clicks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("banner_id", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(
            ["banner_id"],
            ["banners.id"],
            name="fk_clicks_banner_id",
            ondelete="CASCADE",
            onupdate="CASCADE",
        ),
    )
    op.create_index("idx_clicks_banner_id", "clicks", ["banner_id"])
    op.create_index("idx_clicks_timestamp", "clicks", ["timestamp"])
    op.create_index("idx_clicks_created_at", "clicks", ["created_at"])
    op.create_index("idx_clicks_banner_id_timestamp", "clicks", ["banner_id", "timestamp"])


def downgrade() -> None:
    op.drop_index("idx_clicks_banner_id_timestamp", table_name="clicks")
    op.drop_index("idx_clicks_created_at", table_name="clicks")
    op.drop_index("idx_clicks_timestamp", table_name="clicks")
    op.drop_index("idx_clicks_banner_id", table_name="clicks")
    op.drop_table("clicks")

"""victimas and causa-victima links

Revision ID: 3c4d5e6f7a8b
Revises: 0a1b2c3d4e5f
Create Date: 2026-10-19 16:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3c4d5e6f7a8b"
down_revision = "0a1b2c3d4e5f"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "victima",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("nombre_victima", sa.String(length=160), nullable=False),
        sa.Column("doc_id", sa.String(length=30), nullable=False, unique=True),
        sa.Column("nacionalidad_id", sa.Integer(), sa.ForeignKey("nacionalidad.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "causa_victima",
        sa.Column("causa_id", sa.Integer(), sa.ForeignKey("causa.id"), primary_key=True),
        sa.Column("victima_id", sa.Integer(), sa.ForeignKey("victima.id"), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_causa_victima_victima_id", "causa_victima", ["victima_id"])


def downgrade():
    op.drop_index("ix_causa_victima_victima_id", table_name="causa_victima")
    op.drop_table("causa_victima")
    op.drop_table("victima")

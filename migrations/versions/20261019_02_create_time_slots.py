"""create time slots

Revision ID: 20261019_02
Revises: 20261019_01
Create Date: 2026-10-19 09:10:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261019_02"
down_revision: Union[str, None] = "20261019_01"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "time_slots",
        sa.Column("id", sa.Integer(), sa.Identity(), primary_key=True, nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_booked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("doctor_id", "date", "start_time", name="uq_time_slots_doctor_start"),
    )
    op.create_index("ix_time_slots_id", "time_slots", ["id"], unique=False)
    op.create_index("ix_time_slots_doctor_id", "time_slots", ["doctor_id"], unique=False)
    op.create_index("ix_time_slots_date", "time_slots", ["date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_time_slots_date", table_name="time_slots")
    op.drop_index("ix_time_slots_doctor_id", table_name="time_slots")
    op.drop_index("ix_time_slots_id", table_name="time_slots")
    op.drop_table("time_slots")

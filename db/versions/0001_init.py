"""init

Revision ID: 0001_init
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    draw_type = postgresql.ENUM("wheel", "jackpot", name="draw_type", create_type=False)
    prize_category = postgresql.ENUM(
        "physical", "digital", "no_win", name="prize_category", create_type=False
    )

    draw_type.create(op.get_bind(), checkfirst=True)
    prize_category.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "prizes",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("draw_type", draw_type, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", prize_category, nullable=False),
        sa.Column("color", sa.String(length=16), nullable=True),
        sa.Column("icon", sa.String(length=16), nullable=True),
        sa.Column("emoji", sa.String(length=16), nullable=True),
        sa.Column("weight", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_prizes_draw_type_created_at", "prizes", ["draw_type", "created_at"], unique=False
    )

    op.create_table(
        "prize_inventory",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "prize_id",
            sa.String(length=36),
            sa.ForeignKey("prizes.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("reserved_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        sa.CheckConstraint("reserved_quantity >= 0", name="ck_inventory_reserved_non_negative"),
        sa.CheckConstraint(
            "reserved_quantity <= quantity", name="ck_inventory_reserved_le_quantity"
        ),
    )

    op.create_table(
        "draw_settings",
        sa.Column("draw_type", draw_type, primary_key=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "eligibility_windows",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("participant_id", sa.String(length=64), nullable=False),
        sa.Column("draw_type", draw_type, nullable=False),
        sa.Column("last_drawn_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("draw_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.UniqueConstraint(
            "participant_id", "draw_type", name="uq_eligibility_participant_draw"
        ),
    )

    op.create_table(
        "spin_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("participant_id", sa.String(length=64), nullable=False),
        sa.Column("draw_type", draw_type, nullable=False),
        sa.Column(
            "prize_id",
            sa.String(length=36),
            sa.ForeignKey("prizes.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("prize_name", sa.Text(), nullable=False),
        sa.Column("prize_description", sa.Text(), nullable=True),
        sa.Column("prize_category", prize_category, nullable=False),
        sa.Column("prize_glyph", sa.String(length=16), nullable=True),
        sa.Column("period_key", sa.String(length=10), nullable=False),
        sa.Column("drawn_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "participant_id", "draw_type", "period_key", name="uq_spin_participant_period"
        ),
    )
    op.create_index(
        "ix_spin_records_participant", "spin_records", ["participant_id", "draw_type"], unique=False
    )
    op.create_index("ix_spin_records_drawn_at", "spin_records", ["drawn_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_spin_records_drawn_at", table_name="spin_records")
    op.drop_index("ix_spin_records_participant", table_name="spin_records")
    op.drop_table("spin_records")
    op.drop_table("eligibility_windows")
    op.drop_table("draw_settings")
    op.drop_table("prize_inventory")
    op.drop_index("ix_prizes_draw_type_created_at", table_name="prizes")
    op.drop_table("prizes")

    op.execute("DROP TYPE IF EXISTS prize_category")
    op.execute("DROP TYPE IF EXISTS draw_type")

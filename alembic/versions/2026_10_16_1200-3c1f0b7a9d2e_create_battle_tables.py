# pyright: reportAttributeAccessIssue=false, reportUndefinedVariable=false
"""create_battle_tables

Revision ID: 3c1f0b7a9d2e
Revises:
Create Date: 2026-10-16 12:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel.sql.sqltypes

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1f0b7a9d2e"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

card_type = sa.Enum(
    "FIRE", "WATER", "STONE", "ELECTRIC", "ICE", "STEEL", "PIXIE", name="cardtype"
)
ability_type = sa.Enum("ATTACK", "DEFENSE", "HEAL", "DEBUFF", name="abilitytype")
battle_status = sa.Enum("WAITING", "ACTIVE", "COMPLETED", name="battlestatus")
action_type = sa.Enum("ATTACK", "ABILITY", "DEFEND", name="actiontype")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "cards",
        *_timestamps(),
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=50), nullable=False),
        sa.Column("image_url", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("hp", sa.Integer(), nullable=False),
        sa.Column("attack", sa.Integer(), nullable=False),
        sa.Column("defense", sa.Integer(), nullable=False),
        sa.Column("speed", sa.Integer(), nullable=False),
        sa.Column("card_type", card_type, nullable=False),
        sa.Column("card_subtype", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("special_ability", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("ability_type", ability_type, nullable=False),
        sa.Column("ability_power", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_cards_id"), "cards", ["id"])
    op.create_index(op.f("ix_cards_name"), "cards", ["name"])
    op.create_index(op.f("ix_cards_user_id"), "cards", ["user_id"])

    op.create_table(
        "battles",
        *_timestamps(),
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("status", battle_status, nullable=False),
        sa.Column("current_turn", sa.Integer(), nullable=True),
        sa.Column("winner_id", sa.BigInteger(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_battles_id"), "battles", ["id"])
    op.create_index(op.f("ix_battles_status"), "battles", ["status"])

    op.create_table(
        "battle_participants",
        *_timestamps(),
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("battle_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("card_id", sa.Integer(), nullable=False),
        sa.Column("current_hp", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("has_used_ability", sa.Boolean(), nullable=False),
        sa.Column("is_defending", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["battle_id"], ["battles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["card_id"], ["cards.id"]),
        sa.PrimaryKeyConstraint("id"),
        # Joining an open slot relies on this key to fail atomically
        sa.UniqueConstraint("battle_id", "position", name="uq_participant_slot"),
        sa.UniqueConstraint("battle_id", "user_id", name="uq_participant_user"),
    )
    op.create_index(op.f("ix_battle_participants_id"), "battle_participants", ["id"])
    op.create_index(op.f("ix_battle_participants_battle_id"), "battle_participants", ["battle_id"])
    op.create_index(op.f("ix_battle_participants_user_id"), "battle_participants", ["user_id"])
    op.create_index(op.f("ix_battle_participants_card_id"), "battle_participants", ["card_id"])

    op.create_table(
        "battle_turns",
        *_timestamps(),
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("battle_id", sa.Integer(), nullable=False),
        sa.Column("participant_id", sa.Integer(), nullable=False),
        sa.Column("action_type", action_type, nullable=False),
        sa.Column("damage_dealt", sa.Integer(), nullable=False),
        sa.Column("turn_number", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["battle_id"], ["battles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["participant_id"], ["battle_participants.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("battle_id", "turn_number", name="uq_turn_number"),
    )
    op.create_index(op.f("ix_battle_turns_id"), "battle_turns", ["id"])
    op.create_index(op.f("ix_battle_turns_battle_id"), "battle_turns", ["battle_id"])
    op.create_index(op.f("ix_battle_turns_participant_id"), "battle_turns", ["participant_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("battle_turns")
    op.drop_table("battle_participants")
    op.drop_table("battles")
    op.drop_table("cards")

    action_type.drop(op.get_bind(), checkfirst=True)
    battle_status.drop(op.get_bind(), checkfirst=True)
    ability_type.drop(op.get_bind(), checkfirst=True)
    card_type.drop(op.get_bind(), checkfirst=True)

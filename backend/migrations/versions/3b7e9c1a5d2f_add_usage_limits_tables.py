"""add usage limits tables

Revision ID: 3b7e9c1a5d2f
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from __future__ import annotations

import sqlalchemy as sa
import sqlmodel
from alembic import op

# revision identifiers, used by Alembic.
revision = "3b7e9c1a5d2f"
down_revision = None
branch_labels = None
depends_on = None

_STR = sqlmodel.sql.sqltypes.AutoString


def _has_table(table_name: str) -> bool:
    return sa.inspect(op.get_bind()).has_table(table_name)


def _has_index(table_name: str, index_name: str) -> bool:
    if not _has_table(table_name):
        return False
    indexes = sa.inspect(op.get_bind()).get_indexes(table_name)
    return any(index["name"] == index_name for index in indexes)


def _create_index(table_name: str, column: str, *, unique: bool = False) -> None:
    index_name = op.f(f"ix_{table_name}_{column}")
    if not _has_index(table_name, index_name):
        op.create_index(index_name, table_name, [column], unique=unique)


def _drop_index(table_name: str, column: str) -> None:
    index_name = op.f(f"ix_{table_name}_{column}")
    if _has_index(table_name, index_name):
        op.drop_index(index_name, table_name=table_name)


def upgrade() -> None:
    if not _has_table("organizations"):
        op.create_table(
            "organizations",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("name", _STR(), nullable=False),
            sa.Column(
                "limit_cleanup_interval",
                _STR(),
                nullable=False,
                server_default=sa.text("'1h'"),
            ),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _has_table("teams"):
        op.create_table(
            "teams",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            sa.Column("name", _STR(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
    _create_index("teams", "organization_id")

    if not _has_table("agents"):
        op.create_table(
            "agents",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("name", _STR(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _has_table("agent_teams"):
        op.create_table(
            "agent_teams",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("agent_id", sa.Uuid(), nullable=False),
            sa.Column("team_id", sa.Uuid(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["agent_id"], ["agents.id"]),
            sa.ForeignKeyConstraint(["team_id"], ["teams.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("agent_id", "team_id", name="uq_agent_teams_agent_team"),
        )
    _create_index("agent_teams", "agent_id")
    _create_index("agent_teams", "team_id")

    if not _has_table("interactions"):
        op.create_table(
            "interactions",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("agent_id", sa.Uuid(), nullable=False),
            sa.Column("model", _STR(), nullable=True),
            sa.Column("input_tokens", sa.Integer(), nullable=True),
            sa.Column("output_tokens", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["agent_id"], ["agents.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
    _create_index("interactions", "agent_id")
    _create_index("interactions", "model")
    _create_index("interactions", "created_at")

    if not _has_table("limits"):
        op.create_table(
            "limits",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("entity_type", _STR(), nullable=False),
            sa.Column("entity_id", _STR(), nullable=False),
            sa.Column("limit_type", _STR(), nullable=False),
            sa.Column("limit_value", sa.Integer(), nullable=False),
            sa.Column("model", _STR(), nullable=True),
            sa.Column("mcp_server_name", _STR(), nullable=True),
            sa.Column("tool_name", _STR(), nullable=True),
            sa.Column(
                "current_usage_tokens_in",
                sa.Integer(),
                nullable=False,
                server_default=sa.text("0"),
            ),
            sa.Column(
                "current_usage_tokens_out",
                sa.Integer(),
                nullable=False,
                server_default=sa.text("0"),
            ),
            sa.Column("last_cleanup", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
    _create_index("limits", "entity_type")
    _create_index("limits", "entity_id")
    _create_index("limits", "limit_type")

    if not _has_table("token_prices"):
        op.create_table(
            "token_prices",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("model", _STR(), nullable=False),
            sa.Column("price_per_million_input", _STR(), nullable=False),
            sa.Column("price_per_million_output", _STR(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("model", name="uq_token_prices_model"),
        )
    _create_index("token_prices", "model")


def downgrade() -> None:
    _drop_index("token_prices", "model")
    if _has_table("token_prices"):
        op.drop_table("token_prices")

    for column in ("limit_type", "entity_id", "entity_type"):
        _drop_index("limits", column)
    if _has_table("limits"):
        op.drop_table("limits")

    for column in ("created_at", "model", "agent_id"):
        _drop_index("interactions", column)
    if _has_table("interactions"):
        op.drop_table("interactions")

    for column in ("team_id", "agent_id"):
        _drop_index("agent_teams", column)
    if _has_table("agent_teams"):
        op.drop_table("agent_teams")

    if _has_table("agents"):
        op.drop_table("agents")

    _drop_index("teams", "organization_id")
    if _has_table("teams"):
        op.drop_table("teams")

    if _has_table("organizations"):
        op.drop_table("organizations")

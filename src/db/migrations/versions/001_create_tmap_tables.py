"""Create users, wishlist, position, referral, restaurant and dish tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("fid", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("legacy_fid", sa.String(), nullable=True, unique=True),
        sa.Column("username", sa.String(), nullable=False, server_default=""),
        sa.Column("wallet_address", sa.String(), nullable=False, server_default=""),
        sa.Column("pfp_url", sa.String(), nullable=True),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("badges", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("reputation_score", sa.BigInteger(), nullable=False, server_default="0"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "wishlist_items",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_fid",
            sa.BigInteger(),
            sa.ForeignKey("users.fid", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("dish_id", sa.String(), nullable=False),
        sa.Column("referrer", sa.BigInteger(), nullable=False, server_default="0"),
        _timestamp("added_at"),
        sa.UniqueConstraint("user_fid", "dish_id", name="uq_wishlist_user_dish"),
    )
    op.create_index(op.f("ix_wishlist_items_user_fid"), "wishlist_items", ["user_fid"])
    op.create_index(op.f("ix_wishlist_items_dish_id"), "wishlist_items", ["dish_id"])

    op.create_table(
        "portfolio_positions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_fid",
            sa.BigInteger(),
            sa.ForeignKey("users.fid", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("dish_id", sa.String(), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False, server_default="0"),
        sa.Column("referred_by", sa.BigInteger(), nullable=True),
        _timestamp("created_at"),
        sa.UniqueConstraint("user_fid", "dish_id", name="uq_position_user_dish"),
    )
    op.create_index(op.f("ix_portfolio_positions_user_fid"), "portfolio_positions", ["user_fid"])
    op.create_index(op.f("ix_portfolio_positions_dish_id"), "portfolio_positions", ["dish_id"])

    op.create_table(
        "position_referrals",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("referrer_fid", sa.BigInteger(), nullable=False),
        sa.Column("dish_id", sa.String(), nullable=False),
        sa.Column("referee_fid", sa.BigInteger(), nullable=False),
        sa.UniqueConstraint(
            "referrer_fid", "dish_id", "referee_fid", name="uq_position_referral"
        ),
    )
    op.create_index(
        op.f("ix_position_referrals_referrer_fid"), "position_referrals", ["referrer_fid"]
    )
    op.create_index(op.f("ix_position_referrals_dish_id"), "position_referrals", ["dish_id"])

    op.create_table(
        "referrals",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("referred_fid", sa.BigInteger(), nullable=False),
        sa.Column("dish_id", sa.String(), nullable=False),
        sa.Column("referrer_fid", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("referred_fid", "dish_id", name="uq_referral_user_dish"),
    )
    op.create_index(op.f("ix_referrals_referred_fid"), "referrals", ["referred_fid"])
    op.create_index(op.f("ix_referrals_dish_id"), "referrals", ["dish_id"])
    op.create_index(op.f("ix_referrals_referrer_fid"), "referrals", ["referrer_fid"])

    op.create_table(
        "restaurants",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=False, server_default=""),
        sa.Column("image", sa.String(), nullable=False, server_default=""),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("tmap_rating", sa.Float(), nullable=False, server_default="0"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(op.f("ix_restaurants_latitude"), "restaurants", ["latitude"])
    op.create_index(op.f("ix_restaurants_longitude"), "restaurants", ["longitude"])

    op.create_table(
        "dishes",
        sa.Column("dish_id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("image", sa.String(), nullable=True),
        sa.Column("creator", sa.BigInteger(), nullable=False),
        sa.Column("restaurant", sa.String(), nullable=False),
        sa.Column("starting_price", sa.Float(), nullable=False),
        sa.Column("current_price", sa.Float(), nullable=False),
        sa.Column("daily_price_change", sa.Float(), nullable=False, server_default="0"),
        sa.Column("current_supply", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_holders", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("daily_volume", sa.Float(), nullable=False, server_default="0"),
        sa.Column("market_cap", sa.Float(), nullable=False, server_default="0"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(op.f("ix_dishes_creator"), "dishes", ["creator"])
    op.create_index(op.f("ix_dishes_restaurant"), "dishes", ["restaurant"])
    op.create_index(op.f("ix_dishes_created_at"), "dishes", ["created_at"])


def downgrade() -> None:
    op.drop_table("dishes")
    op.drop_table("restaurants")
    op.drop_table("referrals")
    op.drop_table("position_referrals")
    op.drop_table("portfolio_positions")
    op.drop_table("wishlist_items")
    op.drop_table("users")

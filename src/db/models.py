"""SQLAlchemy ORM models for the tmap registry."""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class UserDB(Base):
    __tablename__ = "users"

    fid: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    # String-typed fid carried over from legacy imports
    legacy_fid: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    username: Mapped[str] = mapped_column(String, default="")
    wallet_address: Mapped[str] = mapped_column(String, default="")
    pfp_url: Mapped[str | None] = mapped_column(String, nullable=True)
    display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    badges: Mapped[list] = mapped_column(JSONB, default=list)
    reputation_score: Mapped[int] = mapped_column(BigInteger, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class WishlistItemDB(Base):
    __tablename__ = "wishlist_items"
    __table_args__ = (UniqueConstraint("user_fid", "dish_id", name="uq_wishlist_user_dish"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_fid: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.fid", ondelete="CASCADE"), index=True
    )
    dish_id: Mapped[str] = mapped_column(String, index=True)
    # 0 = no referrer
    referrer: Mapped[int] = mapped_column(BigInteger, default=0)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class PortfolioPositionDB(Base):
    __tablename__ = "portfolio_positions"
    __table_args__ = (UniqueConstraint("user_fid", "dish_id", name="uq_position_user_dish"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_fid: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.fid", ondelete="CASCADE"), index=True
    )
    dish_id: Mapped[str] = mapped_column(String, index=True)
    quantity: Mapped[float] = mapped_column(Float, default=0.0)
    referred_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class PositionReferralDB(Base):
    """One row per fid in a position's ``referred_to`` set."""

    __tablename__ = "position_referrals"
    __table_args__ = (
        UniqueConstraint(
            "referrer_fid", "dish_id", "referee_fid", name="uq_position_referral"
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    referrer_fid: Mapped[int] = mapped_column(BigInteger, index=True)
    dish_id: Mapped[str] = mapped_column(String, index=True)
    referee_fid: Mapped[int] = mapped_column(BigInteger)


class ReferralDB(Base):
    __tablename__ = "referrals"
    __table_args__ = (UniqueConstraint("referred_fid", "dish_id", name="uq_referral_user_dish"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    referred_fid: Mapped[int] = mapped_column(BigInteger, index=True)
    dish_id: Mapped[str] = mapped_column(String, index=True)
    referrer_fid: Mapped[int] = mapped_column(BigInteger, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class RestaurantDB(Base):
    __tablename__ = "restaurants"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String)
    address: Mapped[str] = mapped_column(String, default="")
    image: Mapped[str] = mapped_column(String, default="")
    latitude: Mapped[float] = mapped_column(Float, index=True)
    longitude: Mapped[float] = mapped_column(Float, index=True)
    tmap_rating: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class DishDB(Base):
    __tablename__ = "dishes"

    dish_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    image: Mapped[str | None] = mapped_column(String, nullable=True)
    creator: Mapped[int] = mapped_column(BigInteger, index=True)
    # Not a foreign key: the cascade coordinator owns dish removal ordering
    restaurant: Mapped[str] = mapped_column(String, index=True)
    starting_price: Mapped[float] = mapped_column(Float)
    current_price: Mapped[float] = mapped_column(Float)
    daily_price_change: Mapped[float] = mapped_column(Float, default=0.0)
    current_supply: Mapped[float] = mapped_column(Float, default=0.0)
    total_holders: Mapped[int] = mapped_column(Integer, default=0)
    daily_volume: Mapped[float] = mapped_column(Float, default=0.0)
    market_cap: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

"""
Database models for the account ledger

Four tables back the service:
- users: public-key identity plus the subscription document
- credits: remaining request balance and API key, one row per user
- packages: external pricing catalog (read-only to the ledger)
- transactions: append-only log of credit purchases
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import (
    String, DateTime, Integer, Numeric, ForeignKey, JSON, Index
)
from sqlalchemy.orm import relationship, Mapped, mapped_column, declarative_base


Base = declarative_base()


class User(Base):
    """A user identified by its public key"""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pubkey: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    # Method key -> ordered list of subscription keys
    subscriptions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    # Bumped on every subscription write; used as the compare-and-swap token
    subscriptions_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    credit: Mapped[Optional["Credit"]] = relationship("Credit", back_populates="user", uselist=False)
    transactions: Mapped[List["Transaction"]] = relationship("Transaction", back_populates="user")


class Credit(Base):
    """Remaining request balance for a user. Absence of a row means zero credits."""
    __tablename__ = "credits"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), primary_key=True)
    remaining_requests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    api_key: Mapped[Optional[str]] = mapped_column(String(128), unique=True, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user: Mapped["User"] = relationship("User", back_populates="credit")


class Package(Base):
    """A purchasable bundle of credits at a fixed USDC price."""
    __tablename__ = "packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    price_usdc: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    requests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # Credits granted per purchase


class Transaction(Base):
    """One completed credit purchase. Never updated or deleted."""
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    package_id: Mapped[int] = mapped_column(Integer, ForeignKey("packages.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    user: Mapped["User"] = relationship("User", back_populates="transactions")
    package: Mapped["Package"] = relationship("Package")

    __table_args__ = (
        Index("ix_transactions_user_created", "user_id", "created_at"),
    )

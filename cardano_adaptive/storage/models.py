"""SQLAlchemy ORM models – registry and action-chain tables."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum as SqlEnum,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


# ---------------------------------------------------------------------------
# enums
# ---------------------------------------------------------------------------


class DAppCategory(str, PyEnum):
    DEX = "dex"
    NFT_MARKETPLACE = "nft_marketplace"
    LENDING = "lending"
    STAKING = "staking"
    BRIDGE = "bridge"
    LAUNCHPAD = "launchpad"
    GAMING = "gaming"
    WALLET = "wallet"
    EXPLORER = "explorer"
    IDENTITY = "identity"
    ORACLE = "oracle"
    OTHER = "other"


class ActionStatus(str, PyEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ChainStatus(str, PyEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ExecutionMode(str, PyEnum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    MIXED = "mixed"


# ---------------------------------------------------------------------------
# base
# ---------------------------------------------------------------------------


class Base(AsyncAttrs, DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# registry (read-only for the intent pipeline)
# ---------------------------------------------------------------------------


class DApp(Base):
    __tablename__ = "dapps"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), index=True)
    type: Mapped[DAppCategory] = mapped_column(SqlEnum(DAppCategory), index=True)
    description: Mapped[str] = mapped_column(Text, default="")
    contract_addresses: Mapped[list] = mapped_column(JSON, default=list)
    logo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    website_url: Mapped[str] = mapped_column(String(512), default="")
    api_endpoint: Mapped[str | None] = mapped_column(String(512), nullable=True)
    tvl: Mapped[float | None] = mapped_column(Float, nullable=True)
    volume_24h: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    last_indexed: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    interfaces: Mapped[list[DAppInterface]] = relationship(
        back_populates="dapp", cascade="all, delete-orphan",
    )
    pools: Mapped[list[Pool]] = relationship(back_populates="dapp", cascade="all, delete-orphan")


class DAppInterface(Base):
    __tablename__ = "dapp_interfaces"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    dapp_id: Mapped[str] = mapped_column(ForeignKey("dapps.id"), index=True)
    action_type: Mapped[str] = mapped_column(String(64), index=True)  # swap / stake / nft-buy / …
    input_schema: Mapped[dict] = mapped_column(JSON, default=dict)
    output_schema: Mapped[dict] = mapped_column(JSON, default=dict)
    contract_interface: Mapped[dict] = mapped_column(JSON, default=dict)  # opaque, passed through
    example_usage: Mapped[str | None] = mapped_column(Text, nullable=True)

    dapp: Mapped[DApp] = relationship(back_populates="interfaces")

    __table_args__ = (
        Index("uq_interface_dapp_action", "dapp_id", "action_type", unique=True),
    )


class Pool(Base):
    __tablename__ = "pools"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    dapp_id: Mapped[str] = mapped_column(ForeignKey("dapps.id"), index=True)
    pool_address: Mapped[str] = mapped_column(String(255), unique=True)
    token0: Mapped[str] = mapped_column(String(128), index=True)
    token1: Mapped[str] = mapped_column(String(128), index=True)
    reserve0: Mapped[str] = mapped_column(String(78), default="0")  # string to avoid float precision issues
    reserve1: Mapped[str] = mapped_column(String(78), default="0")
    fee: Mapped[float] = mapped_column(Float, default=0.003)
    liquidity: Mapped[str] = mapped_column(String(78), default="0")
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    dapp: Mapped[DApp] = relationship(back_populates="pools")


# ---------------------------------------------------------------------------
# action chains
# ---------------------------------------------------------------------------


class ActionChain(Base):
    __tablename__ = "action_chains"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    intent_text: Mapped[str] = mapped_column(Text)
    actions: Mapped[list] = mapped_column(JSON, default=list)  # array order == action order
    execution_mode: Mapped[str] = mapped_column(String(16), default=ExecutionMode.SEQUENTIAL.value)
    status: Mapped[str] = mapped_column(String(16), default=ChainStatus.PENDING.value, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

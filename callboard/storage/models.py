import secrets
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def new_external_id() -> str:
    """24 hex chars, same shape as a document-store object id."""
    return secrets.token_hex(12)


class Sighting(Base):
    """One token mention in one TG channel, as written by the channel scrapers."""

    __tablename__ = "tokens"

    # Insertion order only; never exposed (see tokens.identity for the public id)
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True, default=new_external_id
    )

    # Source
    channel: Mapped[str | None] = mapped_column(String(256), nullable=True)
    message_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Token
    contract: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    symbol: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    # Market data
    market_cap: Mapped[float | None] = mapped_column(Float, nullable=True)
    market_cap_call: Mapped[float | None] = mapped_column(Float, nullable=True)
    ath: Mapped[float | None] = mapped_column(Float, nullable=True)
    ath_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    low: Mapped[float | None] = mapped_column(Float, nullable=True)
    low_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    low_cap_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Timestamps: `date` is when the call was seen in the channel
    date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    is_favorite: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=False)

    __table_args__ = (
        Index("ix_tokens_channel", "channel"),
        Index("ix_tokens_contract", "contract"),
        Index("ix_tokens_symbol", "symbol"),
    )

    def __repr__(self) -> str:
        return f"<Sighting {self.symbol} {(self.contract or '')[:12]} @ {self.channel}>"

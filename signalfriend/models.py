"""
SQLAlchemy database models for SignalFriend.

Marketplace schema: predictors, categories, signals, purchase receipts,
ratings, reports, disputes and the webhook idempotency ledger.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def generate_uuid():
    """Generate a UUID string for primary keys."""
    return str(uuid.uuid4())


def utc_now():
    """Generate timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


predictor_categories = Table(
    "predictor_categories",
    Base.metadata,
    Column("predictor_id", String(36), ForeignKey("predictors.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", String(36), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    """
    Signal category, grouped under a main group (Crypto, Traditional Finance, ...).
    """

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(50), nullable=False)
    slug = Column(String(50), unique=True, nullable=False, index=True)
    main_group = Column(String(50), nullable=False)
    description = Column(String(200), default="")
    icon = Column(String(10), default="")
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    signals = relationship("Signal", back_populates="category")

    __table_args__ = (
        UniqueConstraint("main_group", "name", name="uq_category_group_name"),
        Index("idx_category_active_sort", "is_active", "main_group", "sort_order"),
    )

    def __repr__(self):
        return f"<Category(slug={self.slug}, group={self.main_group})>"


class Predictor(Base):
    """
    Signal seller. Created when the wallet mints a PredictorAccessPass NFT.
    """

    __tablename__ = "predictors"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    wallet_address = Column(String(42), unique=True, nullable=False, index=True)  # lowercase
    token_id = Column(BigInteger, unique=True, nullable=False)  # PredictorAccessPass token
    display_name = Column(String(50), nullable=False)
    display_name_changed = Column(Boolean, default=False, nullable=False)
    bio = Column(String(500), default="")
    avatar_url = Column(String(500), default="")
    twitter = Column(String(100), default="")
    telegram = Column(String(100), default="")
    discord = Column(String(100), default="")
    preferred_contact = Column(String(20), default="telegram", nullable=False)
    total_signals = Column(Integer, default=0, nullable=False)
    total_sales = Column(Integer, default=0, nullable=False)
    total_earnings = Column(Float, default=0.0, nullable=False)
    average_rating = Column(Float, default=0.0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)
    is_blacklisted = Column(Boolean, default=False, nullable=False, index=True)
    is_verified = Column(Boolean, default=False, nullable=False, index=True)
    verification_status = Column(String(20), default="none", nullable=False, index=True)
    sales_at_last_application = Column(Integer, default=0, nullable=False)
    earnings_at_last_application = Column(Float, default=0.0, nullable=False)
    verification_applied_at = Column(DateTime)
    referred_by = Column(String(42))
    referral_paid = Column(Boolean, default=False, nullable=False)
    joined_at = Column(DateTime, default=utc_now, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    categories = relationship("Category", secondary=predictor_categories, lazy="selectin")
    signals = relationship("Signal", back_populates="predictor")

    __table_args__ = (
        Index("idx_predictor_total_earnings", "total_earnings"),
        Index("idx_predictor_referral", "referred_by", "referral_paid"),
    )

    def __repr__(self):
        return f"<Predictor(address={self.wallet_address}, token_id={self.token_id})>"


class Signal(Base):
    """
    Trading signal listed for sale. ``content`` is only revealed to buyers.
    """

    __tablename__ = "signals"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    content_id = Column(String(36), unique=True, nullable=False, index=True, default=generate_uuid)
    predictor_id = Column(String(36), ForeignKey("predictors.id"), nullable=False)
    predictor_address = Column(String(42), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=False)
    content = Column(Text, nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"))
    price_usdt = Column(Float, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    risk_level = Column(String(10), nullable=False)
    potential_reward = Column(String(10), nullable=False)
    total_sales = Column(Integer, default=0, nullable=False)
    average_rating = Column(Float, default=0.0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    predictor = relationship("Predictor", back_populates="signals")
    category = relationship("Category", back_populates="signals")
    receipts = relationship("Receipt", back_populates="signal")

    __table_args__ = (
        Index("idx_signal_active_created", "is_active", "created_at"),
        Index("idx_signal_category", "category_id", "is_active"),
    )

    def __repr__(self):
        return f"<Signal(content_id={self.content_id}, predictor={self.predictor_address})>"


class Receipt(Base):
    """
    Purchase record backed by a SignalKeyNFT token.
    """

    __tablename__ = "receipts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    token_id = Column(BigInteger, unique=True, nullable=False)  # SignalKeyNFT token
    content_id = Column(String(36), nullable=False, index=True)
    signal_id = Column(String(36), ForeignKey("signals.id"), nullable=False)
    buyer_address = Column(String(42), nullable=False, index=True)
    predictor_address = Column(String(42), nullable=False, index=True)
    price_usdt = Column(Float, nullable=False)
    purchased_at = Column(DateTime, default=utc_now, nullable=False)
    transaction_hash = Column(String(66), nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    signal = relationship("Signal", back_populates="receipts")

    __table_args__ = (Index("idx_receipt_buyer_content", "buyer_address", "content_id"),)

    def __repr__(self):
        return f"<Receipt(token_id={self.token_id}, buyer={self.buyer_address})>"


class Review(Base):
    """
    Permanent 1-5 rating, one per purchase receipt.
    """

    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    token_id = Column(BigInteger, unique=True, nullable=False)
    signal_id = Column(String(36), ForeignKey("signals.id"), nullable=False, index=True)
    content_id = Column(String(36), nullable=False, index=True)
    buyer_address = Column(String(42), nullable=False, index=True)
    predictor_address = Column(String(42), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    review_text = Column(String(1000), default="")
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (CheckConstraint("score >= 1 AND score <= 5", name="ck_review_score"),)

    def __repr__(self):
        return f"<Review(token_id={self.token_id}, score={self.score})>"


class Report(Base):
    """
    Buyer report against a purchased signal.
    """

    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    token_id = Column(BigInteger, unique=True, nullable=False)
    signal_id = Column(String(36), ForeignKey("signals.id"), nullable=False, index=True)
    content_id = Column(String(36), nullable=False, index=True)
    reporter_address = Column(String(42), nullable=False, index=True)
    predictor_address = Column(String(42), nullable=False, index=True)
    reason = Column(String(30), nullable=False)
    description = Column(String(1000), default="")
    status = Column(String(20), default="pending", nullable=False, index=True)
    admin_notes = Column(String(2000), default="")
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    signal = relationship("Signal")

    def __repr__(self):
        return f"<Report(token_id={self.token_id}, reason={self.reason}, status={self.status})>"


class Dispute(Base):
    """
    Blacklist appeal raised by a predictor. At most one per predictor.
    """

    __tablename__ = "disputes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    predictor_address = Column(String(42), unique=True, nullable=False)
    status = Column(String(20), default="pending", nullable=False, index=True)
    admin_notes = Column(String(2000), default="")
    resolved_at = Column(DateTime)
    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f"<Dispute(predictor={self.predictor_address}, status={self.status})>"


class ProcessedWebhookEvent(Base):
    """
    Idempotency ledger for blockchain events delivered by webhooks.

    ``event_key`` is ``{tx_hash}-{topic0}`` in lowercase.
    """

    __tablename__ = "processed_webhook_events"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    event_key = Column(String(140), unique=True, nullable=False)
    transaction_hash = Column(String(66), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    webhook_id = Column(String(100), nullable=False)
    webhook_created_at = Column(DateTime, nullable=False)
    processed_at = Column(DateTime, default=utc_now, nullable=False, index=True)

    def __repr__(self):
        return f"<ProcessedWebhookEvent(key={self.event_key}, type={self.event_type})>"

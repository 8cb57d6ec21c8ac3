"""
SQLAlchemy ORM models for the Tally database.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    ForeignKey,
    Float,
    Enum as SQLEnum,
    JSON,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime, timezone
import enum

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# Enums
class UserRole(str, enum.Enum):
    """Access level of a profile."""

    USER = "user"
    ADMIN = "admin"


class RateType(str, enum.Enum):
    """How an event is priced."""

    HOURLY = "hourly"
    FIXED = "fixed"


class PaymentStatus(str, enum.Enum):
    """Whether the client has paid for an event."""

    PAID = "paid"
    UNPAID = "unpaid"


class EventSource(str, enum.Enum):
    """Where an event record came from."""

    WEB = "web"
    WHATSAPP = "whatsapp"
    ASSISTANT = "assistant"


# Models
class Profile(Base):
    """User profile (id comes from the upstream auth provider)."""

    __tablename__ = "profiles"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=True, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(
        SQLEnum(UserRole, name="userrole", values_callable=_enum_values),
        default=UserRole.USER,
        nullable=False,
    )
    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    events = relationship("Event", back_populates="profile", cascade="all, delete-orphan")
    settings = relationship(
        "UserSettings", back_populates="profile", uselist=False, cascade="all, delete-orphan"
    )


class Event(Base):
    """A client meeting / lecture / project session and what it is worth."""

    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("duration_hours > 0", name="ck_events_duration_positive"),
        CheckConstraint("rate >= 0", name="ck_events_rate_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    duration_hours = Column(Float, nullable=False)
    client_name = Column(String(255), nullable=False, index=True)
    event_type = Column(String(100), nullable=False)
    rate_type = Column(
        SQLEnum(RateType, name="ratetype", values_callable=_enum_values),
        default=RateType.HOURLY,
        nullable=False,
    )
    rate = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)
    payment_status = Column(
        SQLEnum(PaymentStatus, name="paymentstatus", values_callable=_enum_values),
        default=PaymentStatus.UNPAID,
        nullable=False,
        index=True,
    )
    source = Column(
        SQLEnum(EventSource, name="eventsource", values_callable=_enum_values),
        default=EventSource.WEB,
        nullable=False,
    )
    notes = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    profile = relationship("Profile", back_populates="events")


class UserSettings(Base):
    """Per-user business name and default prices for new events."""

    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        String(255),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    business_name = Column(String(255), nullable=True)
    default_hourly_rate = Column(Float, nullable=False)
    default_fixed_rate = Column(Float, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    profile = relationship("Profile", back_populates="settings")

"""Database and schema models for Tally."""
from app.models.database_models import (
    Profile,
    Event,
    UserSettings,
    UserRole,
    RateType,
    PaymentStatus,
    EventSource,
)
from app.models.schemas import (
    EventCreate,
    EventUpdate,
    EventResponse,
    KPIResponse,
    MonthlyReportResponse,
    SettingsResponse,
    ProfileResponse,
    AssistantChatResponse,
    ParseMessageResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "Profile",
    "Event",
    "UserSettings",
    "UserRole",
    "RateType",
    "PaymentStatus",
    "EventSource",
    # Pydantic schemas
    "EventCreate",
    "EventUpdate",
    "EventResponse",
    "KPIResponse",
    "MonthlyReportResponse",
    "SettingsResponse",
    "ProfileResponse",
    "AssistantChatResponse",
    "ParseMessageResponse",
    "HealthCheckResponse",
]

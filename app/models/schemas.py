"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any, Literal
from datetime import date as date_type, datetime
from enum import Enum


# Enums (matching database enums)
class UserRoleSchema(str, Enum):
    """Profile roles for API requests and responses."""

    USER = "user"
    ADMIN = "admin"


class RateTypeSchema(str, Enum):
    """Pricing modes for API requests and responses."""

    HOURLY = "hourly"
    FIXED = "fixed"


class PaymentStatusSchema(str, Enum):
    """Payment states for API requests and responses."""

    PAID = "paid"
    UNPAID = "unpaid"


class EventSourceSchema(str, Enum):
    """Event origins for API responses."""

    WEB = "web"
    WHATSAPP = "whatsapp"
    ASSISTANT = "assistant"


TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# Event Schemas
class EventCreate(BaseModel):
    """Schema for creating a new event. total_amount is always computed."""

    model_config = ConfigDict(str_strip_whitespace=True)

    date: date_type
    start_time: str = Field(..., pattern=TIME_PATTERN)
    duration_hours: float = Field(..., gt=0, le=24)
    client_name: str = Field(..., min_length=1, max_length=255)
    event_type: str = Field(..., min_length=1, max_length=100)
    rate_type: RateTypeSchema = RateTypeSchema.HOURLY
    rate: float = Field(..., ge=0)
    payment_status: PaymentStatusSchema = PaymentStatusSchema.UNPAID
    notes: Optional[str] = None
    tags: Optional[List[str]] = None


class EventUpdate(BaseModel):
    """Partial update; omitted fields are left untouched."""

    model_config = ConfigDict(str_strip_whitespace=True)

    date: Optional[date_type] = None
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    duration_hours: Optional[float] = Field(None, gt=0, le=24)
    client_name: Optional[str] = Field(None, min_length=1, max_length=255)
    event_type: Optional[str] = Field(None, min_length=1, max_length=100)
    rate_type: Optional[RateTypeSchema] = None
    rate: Optional[float] = Field(None, ge=0)
    payment_status: Optional[PaymentStatusSchema] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None


class EventResponse(BaseModel):
    """Schema for event details."""

    id: int
    user_id: str
    date: date_type
    start_time: str
    end_time: str
    duration_hours: float
    client_name: str
    event_type: str
    rate_type: RateTypeSchema
    rate: float
    total_amount: float
    payment_status: PaymentStatusSchema
    source: EventSourceSchema
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# KPI / Report Schemas
# ---------------------------------------------------------------------------

class KPIResponse(BaseModel):
    """Aggregate figures over a set of events."""

    total_revenue: float
    paid_revenue: float
    unpaid_revenue: float
    total_events: int
    total_hours: float
    avg_rate: float          # revenue per hour
    payment_rate: float      # paid share of revenue, percent
    avg_per_event: float


class DashboardResponse(BaseModel):
    """Response for GET /api/reports/dashboard."""

    kpis: KPIResponse
    currency: str
    scope: Literal["own", "all"]


class WeeklyRevenueItem(BaseModel):
    week: int
    name: str
    revenue: float


class EventTypeRevenueItem(BaseModel):
    name: str
    value: float


class MonthlyReportResponse(BaseModel):
    """Response for GET /api/reports/monthly."""

    year: int
    month: int
    start_date: date_type
    end_date: date_type
    scope: Literal["own", "all"]
    currency: str
    kpis: KPIResponse
    weekly_revenue: List[WeeklyRevenueItem]
    revenue_by_event_type: List[EventTypeRevenueItem]


# ---------------------------------------------------------------------------
# Settings Schemas
# ---------------------------------------------------------------------------

class SettingsUpdateRequest(BaseModel):
    """Request body for PUT /api/settings."""

    model_config = ConfigDict(str_strip_whitespace=True)

    business_name: Optional[str] = Field(None, max_length=255)
    default_hourly_rate: float = Field(..., ge=0)
    default_fixed_rate: float = Field(..., ge=0)


class SettingsResponse(BaseModel):
    """Caller's settings; ``is_default`` is True when nothing is stored yet."""

    user_id: str
    business_name: Optional[str] = None
    default_hourly_rate: float
    default_fixed_rate: float
    is_default: bool = False
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Profile / Admin Schemas
# ---------------------------------------------------------------------------

class ProfileResponse(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRoleSchema
    is_admin: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AdminUsersResponse(BaseModel):
    """Response for GET /api/admin/users."""

    users: List[ProfileResponse]
    total: int
    admin_count: int
    user_count: int


class RoleUpdateRequest(BaseModel):
    role: UserRoleSchema


# ---------------------------------------------------------------------------
# Assistant Schemas
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    """A single prior turn of the conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class AssistantChatRequest(BaseModel):
    """Request body for POST /api/assistant/chat."""

    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(..., min_length=1)
    messages: List[ChatMessage] = []


class AssistantAction(BaseModel):
    """A record mutation proposed by the assistant (admins only)."""

    type: str
    data: Dict[str, Any]


class ActionResult(BaseModel):
    type: str
    applied: bool
    message: str
    event_id: Optional[int] = None


class AssistantChatResponse(BaseModel):
    """Response for POST /api/assistant/chat."""

    response: str
    action: Optional[AssistantAction] = None
    action_result: Optional[ActionResult] = None


class MonthlyStats(BaseModel):
    total_revenue: float
    paid_revenue: float
    unpaid_revenue: float
    total_events: int
    total_hours: float
    avg_rate: float


class StatsRequest(BaseModel):
    """Request body for POST /api/assistant/stats."""

    query: Optional[str] = None


class StatsResponse(BaseModel):
    """Response for POST /api/assistant/stats."""

    year: int
    month: int
    stats: MonthlyStats
    answer: Optional[str] = None


class ParseMessageRequest(BaseModel):
    """Request body for POST /api/assistant/parse-message."""

    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(..., min_length=1)


class ParseMessageResponse(BaseModel):
    """Response for POST /api/assistant/parse-message."""

    success: bool
    event: EventResponse
    message: str


# Health Check Schema
class HealthCheckResponse(BaseModel):
    """Schema for health check endpoint."""

    status: str
    database: str
    llm: str
    timestamp: datetime
    version: str = "0.1.0"

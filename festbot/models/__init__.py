from festbot.models.base import Base, engine, AsyncSessionFactory
from festbot.models.models import (
    User,
    Event,
    Team,
    TeamMember,
    Registration,
    PaymentOrder,
    EventType,
    OrderStatus,
    SubjectType,
)

__all__ = [
    "Base",
    "engine",
    "AsyncSessionFactory",
    "User",
    "Event",
    "Team",
    "TeamMember",
    "Registration",
    "PaymentOrder",
    "EventType",
    "OrderStatus",
    "SubjectType",
]

"""Agent domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Agent
from ...shared.validators import validate_phone
from ..bookings.schemas import BookingResponse


class AgentCreate(BaseModel):
    """Schema for a provider adding an agent to its roster"""

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_phone(v)
        return v


class AgentServiceLinkRequest(BaseModel):
    serviceId: int


class AvailabilityRequest(BaseModel):
    status: str


class AgentResponse(BaseModel):
    """Schema for agent response"""

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    status: str
    rating: float
    serviceIds: list[int] = []
    created_at: Optional[datetime] = None


class AgentStats(BaseModel):
    total: int
    pending: int
    inProgress: int
    completed: int


class AgentDashboardResponse(BaseModel):
    agent: AgentResponse
    stats: AgentStats
    pendingJobs: list[BookingResponse]
    inProgressJobs: list[BookingResponse]
    completedJobs: list[BookingResponse]


def agent_to_response(agent: Agent) -> AgentResponse:
    return AgentResponse(
        id=agent.id,
        name=agent.name,
        email=agent.email,
        phone=agent.phone,
        address=agent.address,
        status=agent.status.value,
        rating=agent.rating or 0,
        serviceIds=[s.id for s in agent.services],
        created_at=agent.created_at,
    )

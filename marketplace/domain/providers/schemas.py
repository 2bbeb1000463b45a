"""Provider domain schemas - Pydantic models for organizations, services and rosters"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Client, Organization, Service
from ...shared.validators import validate_phone, validate_price
from ..bookings.schemas import Location


class OrganizationCreate(BaseModel):
    """Schema for creating the provider's organization profile"""

    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    logoUrl: Optional[str] = None
    imageUrls: list[str] = []
    location: Optional[Location] = None
    categories: list[str] = []
    businessHours: Optional[dict[str, Any]] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_phone(v)
        return v


class OrganizationUpdate(BaseModel):
    """Schema for updating the organization profile; only sent fields change"""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    logoUrl: Optional[str] = None
    imageUrls: Optional[list[str]] = None
    location: Optional[Location] = None
    categories: Optional[list[str]] = None
    businessHours: Optional[dict[str, Any]] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_phone(v)
        return v


class OrganizationResponse(BaseModel):
    id: int
    ownerId: int
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    logoUrl: Optional[str] = None
    imageUrls: list[str] = []
    location: Optional[Location] = None
    categories: list[str] = []
    businessHours: Optional[dict[str, Any]] = None
    isVerified: bool
    rating: float
    reviewCount: int
    created_at: Optional[datetime] = None


class ServiceCreate(BaseModel):
    """Schema for adding a service to the organization's catalog"""

    name: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    basePrice: float
    estimatedDuration: Optional[str] = None
    category: str = Field(min_length=1, max_length=100)
    location: Optional[Location] = None
    address: Optional[dict[str, Any]] = None
    tags: list[str] = []
    imageUrls: list[str] = []
    isActive: bool = True

    @field_validator("basePrice")
    @classmethod
    def validate_base_price(cls, v):
        validate_price(v)
        return v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v):
        return [t.strip() for t in v if t and t.strip()]


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    basePrice: Optional[float] = None
    estimatedDuration: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    location: Optional[Location] = None
    address: Optional[dict[str, Any]] = None
    tags: Optional[list[str]] = None
    imageUrls: Optional[list[str]] = None
    isActive: Optional[bool] = None

    @field_validator("basePrice")
    @classmethod
    def validate_base_price(cls, v):
        if v is not None:
            validate_price(v)
        return v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v):
        if v is None:
            return v
        return [t.strip() for t in v if t and t.strip()]


class ServiceResponse(BaseModel):
    """Schema for service response"""

    id: int
    organizationId: int
    organizationName: Optional[str] = None
    name: str
    description: str
    basePrice: float
    estimatedDuration: Optional[str] = None
    category: str
    location: Optional[Location] = None
    address: Optional[dict[str, Any]] = None
    tags: list[str] = []
    imageUrls: list[str] = []
    isActive: bool
    agentIds: list[int] = []
    distanceKm: Optional[float] = None
    score: Optional[float] = None
    created_at: Optional[datetime] = None


class AssignAgentRequest(BaseModel):
    agentId: int


class AssignmentResponse(BaseModel):
    bookingId: int
    agentName: str
    agentPhone: Optional[str] = None


class RosterClientResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None


def _location(latitude: Optional[float], longitude: Optional[float]) -> Optional[Location]:
    if latitude is None or longitude is None:
        return None
    return Location(lat=latitude, lng=longitude)


def organization_to_response(org: Organization) -> OrganizationResponse:
    return OrganizationResponse(
        id=org.id,
        ownerId=org.owner_id,
        name=org.name,
        description=org.description,
        address=org.address,
        phone=org.phone,
        website=org.website,
        logoUrl=org.logo_url,
        imageUrls=org.image_urls or [],
        location=_location(org.latitude, org.longitude),
        categories=org.categories or [],
        businessHours=org.business_hours,
        isVerified=org.is_verified,
        rating=org.rating or 0,
        reviewCount=org.review_count or 0,
        created_at=org.created_at,
    )


def service_to_response(
    service: Service, distance_km: Optional[float] = None, score: Optional[float] = None
) -> ServiceResponse:
    return ServiceResponse(
        id=service.id,
        organizationId=service.organization_id,
        organizationName=service.organization.name if service.organization else None,
        name=service.name,
        description=service.description,
        basePrice=float(service.base_price),
        estimatedDuration=service.estimated_duration,
        category=service.category,
        location=_location(service.latitude, service.longitude),
        address=service.address,
        tags=service.tags or [],
        imageUrls=service.image_urls or [],
        isActive=service.is_active,
        agentIds=[a.id for a in service.agents],
        distanceKm=round(distance_km, 2) if distance_km is not None else None,
        score=round(score, 4) if score is not None else None,
        created_at=service.created_at,
    )


def client_to_response(client: Client) -> RosterClientResponse:
    return RosterClientResponse(id=client.id, name=client.name, email=client.email, phone=client.phone)

"""Search domain schemas - Paginated envelopes for public listings"""

from pydantic import BaseModel

from ..providers.schemas import OrganizationResponse, ServiceResponse


class ServicePage(BaseModel):
    items: list[ServiceResponse]
    total: int
    page: int
    limit: int
    totalPages: int


class OrganizationPage(BaseModel):
    items: list[OrganizationResponse]
    total: int
    page: int
    limit: int
    totalPages: int


class CategoriesResponse(BaseModel):
    categories: list[str]

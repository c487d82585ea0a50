"""
Pydantic schemas for the furniture catalog
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

from pydantic import Field

from schemas.common import CamelModel


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class FurnitureSortField(str, Enum):
    NAME = "name"
    PRICE = "price"
    CREATED_AT = "createdAt"


class FurnitureFilters(CamelModel):
    """Query filters for furniture listing"""

    category: Optional[str] = Field(None, max_length=100)
    style: Optional[str] = Field(None, max_length=100)
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    search: Optional[str] = Field(None, max_length=100)
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort_by: FurnitureSortField = FurnitureSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC


class FurnitureItemResponse(CamelModel):
    id: str
    name: str
    description: str
    category: str
    style: str
    price: Decimal
    currency: str
    image_url: str
    retailer_name: str
    retailer_url: str
    affiliate_url: str
    dimensions: Optional[Dict[str, float]] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class FurnitureReferenceResponse(CamelModel):
    """Static reference item from the frontend catalog"""

    id: str
    name: str
    image: str
    category: str


class AffiliateClickResponse(CamelModel):
    affiliate_url: str

"""
Furniture catalog API routes
"""
import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_optional_user
from core.config import settings
from core.database import get_db
from core.errors import InputError, NotFoundError
from database.models import AnalyticsEvent, FurnitureItem, User
from schemas.common import ApiResponse, PaginatedItems, ok, paginate
from schemas.furniture import (
    AffiliateClickResponse,
    FurnitureFilters,
    FurnitureItemResponse,
    FurnitureReferenceResponse,
    FurnitureSortField,
    SortOrder,
)
from services.furniture_catalog import list_references

logger = logging.getLogger(__name__)
router = APIRouter()

SORT_COLUMNS = {
    FurnitureSortField.NAME: FurnitureItem.name,
    FurnitureSortField.PRICE: FurnitureItem.price,
    FurnitureSortField.CREATED_AT: FurnitureItem.created_at,
}


def like_pattern(term: str) -> str:
    """Substring LIKE pattern with the wildcard characters in term matched literally"""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def apply_filters(query, filters: FurnitureFilters):
    """Restrict a furniture query to active items matching the filters"""
    query = query.where(FurnitureItem.is_active.is_(True))
    if filters.category:
        query = query.where(FurnitureItem.category == filters.category)
    if filters.style:
        query = query.where(FurnitureItem.style == filters.style)
    if filters.min_price is not None:
        query = query.where(FurnitureItem.price >= filters.min_price)
    if filters.max_price is not None:
        query = query.where(FurnitureItem.price <= filters.max_price)
    if filters.search:
        pattern = like_pattern(filters.search)
        query = query.where(
            or_(
                FurnitureItem.name.ilike(pattern, escape="\\"),
                FurnitureItem.description.ilike(pattern, escape="\\"),
            )
        )
    return query


@router.get("", response_model=ApiResponse[PaginatedItems[FurnitureItemResponse]])
async def get_furniture(
    category: Optional[str] = Query(None, max_length=100),
    style: Optional[str] = Query(None, max_length=100),
    min_price: Optional[Decimal] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[Decimal] = Query(None, ge=0, alias="maxPrice"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    sort_by: FurnitureSortField = Query(FurnitureSortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
):
    """Get furniture items with filtering, sorting and pagination"""
    if min_price is not None and max_price is not None and min_price > max_price:
        raise InputError("minPrice must not be greater than maxPrice")

    filters = FurnitureFilters(
        category=category,
        style=style,
        min_price=min_price,
        max_price=max_price,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    total = await db.scalar(apply_filters(select(func.count()).select_from(FurnitureItem), filters))

    column = SORT_COLUMNS[filters.sort_by]
    query = apply_filters(select(FurnitureItem), filters)
    query = query.order_by(column.asc() if filters.sort_order == SortOrder.ASC else column.desc())
    query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)

    result = await db.execute(query)
    items = [FurnitureItemResponse.model_validate(item) for item in result.scalars().all()]

    return ok(
        "Furniture items retrieved successfully",
        PaginatedItems[FurnitureItemResponse](items=items, pagination=paginate(page, limit, total or 0)),
    )


@router.get("/categories", response_model=ApiResponse[List[str]])
async def get_categories(db: AsyncSession = Depends(get_db)):
    query = (
        select(FurnitureItem.category)
        .where(FurnitureItem.is_active.is_(True))
        .distinct()
        .order_by(FurnitureItem.category)
    )
    result = await db.execute(query)
    return ok("Furniture categories retrieved successfully", list(result.scalars().all()))


@router.get("/catalog", response_model=ApiResponse[List[FurnitureReferenceResponse]])
async def get_reference_catalog(category: Optional[str] = Query(None)):
    """Static furniture references bundled with the frontend; category "all" returns everything"""
    references = [FurnitureReferenceResponse.model_validate(ref) for ref in list_references(category)]
    return ok("Furniture catalog retrieved successfully", references)


async def _get_active_item(db: AsyncSession, furniture_id: str) -> FurnitureItem:
    result = await db.execute(
        select(FurnitureItem).where(FurnitureItem.id == furniture_id, FurnitureItem.is_active.is_(True))
    )
    item = result.scalar_one_or_none()
    if not item:
        raise NotFoundError("Furniture item not found", error_code="FURNITURE_NOT_FOUND")
    return item


@router.get("/{furniture_id}", response_model=ApiResponse[FurnitureItemResponse])
async def get_furniture_item(furniture_id: str, db: AsyncSession = Depends(get_db)):
    item = await _get_active_item(db, furniture_id)
    return ok("Furniture item retrieved successfully", FurnitureItemResponse.model_validate(item))


@router.post("/{furniture_id}/click", response_model=ApiResponse[AffiliateClickResponse])
async def track_affiliate_click(
    furniture_id: str,
    request: Request,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Record an affiliate click and hand back the retailer link"""
    item = await _get_active_item(db, furniture_id)

    forwarded_for = request.headers.get("x-forwarded-for")
    client_ip = request.client.host if request.client else None
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()

    db.add(
        AnalyticsEvent(
            user_id=current_user.id if current_user else None,
            furniture_id=item.id,
            event_type="affiliate_click",
            event_data={"retailer": item.retailer_name},
            ip_address=client_ip,
            user_agent=request.headers.get("user-agent"),
            referrer=request.headers.get("referer"),
        )
    )
    await db.commit()

    logger.info(f"Affiliate click on {item.id} ({item.retailer_name})")

    return ok("Affiliate click tracked successfully", AffiliateClickResponse(affiliate_url=item.affiliate_url))

"""Owner-facing short link endpoints: create, list, analytics and delete."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import schemas
from app.api.dependencies import (
    get_analytics_service,
    get_base_url,
    get_current_owner_id,
    get_shortener_service,
)
from app.api.params import LimitParam, PageParam
from app.db.session import db_transaction, get_db
from app.models.link import ShortLink
from app.services.analytics import AnalyticsService
from app.services.exceptions import (
    ConstraintViolationError,
    ForbiddenError,
    InvalidURLError,
    ShortLinkNotFoundError,
    StoreUnavailableError,
)
from app.services.shortener import ShortLinkService, build_full_short_url

router = APIRouter(tags=["links"])


def _link_response(link: ShortLink, base_url: str) -> schemas.ShortLinkResponse:
    return schemas.ShortLinkResponse(
        id=link.id,
        short_code=link.short_code,
        original_url=link.original_url,
        full_short_url=build_full_short_url(link.short_code, base_url),
        clicks=link.clicks,
        created_at=link.created_at,
        updated_at=link.updated_at,
    )


@router.post(
    "/shorten",
    response_model=schemas.ShortLinkResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": schemas.ErrorResponse, "description": "Invalid URL or short code collision"},
        401: {"model": schemas.ErrorResponse, "description": "Missing or invalid token"},
    },
)
async def create_short_link(
    payload: schemas.ShortenRequest,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
    shortener_service: ShortLinkService = Depends(get_shortener_service),
    base_url: str = Depends(get_base_url),
):
    try:
        link = await shortener_service.create_short_link(
            db=db,
            owner_id=owner_id,
            original_url=payload.original_url,
        )
    except (InvalidURLError, ConstraintViolationError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailableError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return _link_response(link, base_url)


@router.get(
    "/urls",
    response_model=schemas.ShortLinkListResponse,
    responses={401: {"model": schemas.ErrorResponse, "description": "Missing or invalid token"}},
)
@db_transaction()
async def list_short_links(
    page: int = PageParam(),
    limit: int = LimitParam(),
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
    shortener_service: ShortLinkService = Depends(get_shortener_service),
    base_url: str = Depends(get_base_url),
):
    """List the requester's live short links, newest first."""
    try:
        links, pagination = await shortener_service.list_owner_links(
            db=db,
            owner_id=owner_id,
            page=page,
            limit=limit,
        )
    except StoreUnavailableError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return schemas.ShortLinkListResponse(
        urls=[_link_response(link, base_url) for link in links],
        pagination=schemas.Pagination.model_validate(pagination),
    )


@router.get(
    "/analytics/{short_code}",
    response_model=schemas.AnalyticsResponse,
    responses={
        401: {"model": schemas.ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": schemas.ErrorResponse, "description": "Not the owner"},
        404: {"model": schemas.ErrorResponse, "description": "Short link not found"},
    },
)
@db_transaction()
async def get_link_analytics(
    short_code: str = Path(..., description="The short code of the link"),
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
    analytics_service: AnalyticsService = Depends(get_analytics_service),
    base_url: str = Depends(get_base_url),
):
    """
    Click analytics for one of the requester's links.

    ``source`` reports whether the snapshot was served from the cache or
    computed from the database for this request.
    """
    try:
        snapshot, source = await analytics_service.get_link_analytics(
            db=db,
            short_code=short_code,
            owner_id=owner_id,
            base_url=base_url,
        )
    except ShortLinkNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except StoreUnavailableError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return schemas.AnalyticsResponse(data=snapshot, source=source)


@router.delete(
    "/delete/{link_id}",
    response_model=schemas.DeleteResponse,
    responses={
        401: {"model": schemas.ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": schemas.ErrorResponse, "description": "Not the owner"},
        404: {"model": schemas.ErrorResponse, "description": "Short link not found"},
    },
)
async def delete_short_link(
    link_id: uuid.UUID = Path(..., description="The id of the link"),
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
    shortener_service: ShortLinkService = Depends(get_shortener_service),
):
    try:
        await shortener_service.delete_short_link(db=db, link_id=link_id, owner_id=owner_id)
    except ShortLinkNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except StoreUnavailableError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return schemas.DeleteResponse(success=True, message="Short link deleted successfully")

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import Settings
from app.errors import AppError, not_found
from app.models.query import HomepageQuery
from app.models.response import HomepageResponse, MetricsResponse
from app.services.cache import ContentCache, Snapshot
from app.services.query import query

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(prefix="/api/content", tags=["Content"])


def get_cache(request: Request) -> ContentCache:
    return request.app.state.cache


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get(
    "/homepage",
    response_model=HomepageResponse,
    summary="Homepage hero and formation catalog",
    description=(
        "Returns the hero banner and one page of formations.  Formations can be "
        "filtered by `category` and `level`, sorted by `date`, `price` or "
        "`title` in `asc` or `desc` order, and paginated with `page` / `limit`.  "
        "Invalid values fall back to their defaults instead of failing.\n\n"
        "Pass `reload=1` to re-read the content file before answering."
    ),
)
@limiter.limit("60/minute")
async def homepage(
    request: Request,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    category: Optional[str] = None,
    level: Optional[str] = None,
    sort: Optional[str] = None,
    order: Optional[str] = None,
    reload: Optional[str] = None,
    cache: ContentCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
) -> HomepageResponse:
    snapshot = await _current_snapshot(cache, force=reload == "1")
    if snapshot.data is None:
        raise not_found("Homepage content is not available", "Homepage content not found")

    req = HomepageQuery.from_params(
        page,
        limit,
        category,
        level,
        sort,
        order,
        default_limit=settings.default_limit,
        max_limit=settings.max_limit,
        allowed_sorts=settings.allowed_sorts,
        allowed_orders=settings.allowed_orders,
        default_sort=settings.default_sort,
        default_order=settings.default_order,
    )
    base_url = str(request.url.replace(query=""))
    return HomepageResponse(data=query(snapshot.data, req, base_url=base_url))


@router.get("/metrics", response_model=MetricsResponse, summary="Content cache counters")
@limiter.limit("60/minute")
async def metrics(request: Request, cache: ContentCache = Depends(get_cache)) -> MetricsResponse:
    return MetricsResponse(data=cache.get_metrics())


async def _current_snapshot(cache: ContentCache, force: bool) -> Snapshot:
    """Fetch the snapshot to serve; load failures degrade to whatever is cached."""
    try:
        if force:
            return await cache.reload()
        return await cache.get()
    except AppError as exc:
        logger.warning("Homepage content load failed (%s): %s", exc.kind, exc.message)
        return cache.snapshot

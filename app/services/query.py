"""Filter, sort, paginate and sanitize homepage content for one request.

The pipeline always runs in the same order:

1. filter on ``category`` / ``level`` (case-insensitive, AND-combined);
2. stable sort on ``date``, ``price`` or ``title``;
3. slice the requested page;
4. sanitize every outgoing text field and re-check URLs;
5. build pagination metadata, including next/previous links.

Nothing here mutates the cached content.
"""

import datetime as dt
import math
from typing import Callable, Dict, List, Optional
from urllib.parse import urlencode

from app.models.content import Formation, Hero, HomepageContent
from app.models.query import HomepageQuery
from app.models.response import CallToActionOut, FormationOut, HeroOut, HomepagePayload, PageInfo
from app.services.sanitizer import safe_url, strip_markup


def query(
    content: HomepageContent, req: HomepageQuery, base_url: Optional[str] = None
) -> HomepagePayload:
    """Run the query pipeline over *content*.

    Args:
        content:  Snapshot data from the cache.
        req:      Defaulted and clamped request descriptor.
        base_url: Absolute URL of the endpoint, used for next/previous links.
                  Links are ``None`` when omitted.
    """
    formations = filter_formations(content.formations, req.category, req.level)
    formations = sort_formations(formations, req.sort, req.order)

    total = len(formations)
    total_pages = math.ceil(total / req.limit) if total else 0
    start = (req.page - 1) * req.limit
    page_items = formations[start : start + req.limit]

    has_next = req.page < total_pages
    has_prev = req.page > 1 and total_pages > 0
    pagination = PageInfo(
        page=req.page,
        limit=req.limit,
        total=total,
        total_pages=total_pages,
        next_page=req.page + 1 if has_next else None,
        prev_page=req.page - 1 if has_prev else None,
        next_url=build_page_url(base_url, req, req.page + 1) if has_next else None,
        prev_url=build_page_url(base_url, req, req.page - 1) if has_prev else None,
    )

    return HomepagePayload(
        hero=sanitize_hero(content.hero),
        formations=[sanitize_formation(f) for f in page_items],
        pagination=pagination,
    )


def filter_formations(
    formations: List[Formation], category: Optional[str], level: Optional[str]
) -> List[Formation]:
    result = list(formations)
    if category:
        result = [f for f in result if f.category.lower() == category]
    if level:
        result = [f for f in result if f.level.lower() == level]
    return result


def _date_key(formation: Formation) -> float:
    """Timestamp of the formation date; unparseable dates count as the epoch."""
    value = formation.date
    if not value:
        return 0.0
    try:
        parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = dt.datetime.fromisoformat(value[:10])
        except ValueError:
            return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.timestamp()


def _price_key(formation: Formation) -> float:
    return formation.price or 0


def _title_key(formation: Formation) -> str:
    return formation.title.lower()


_SORT_KEYS: Dict[str, Callable[[Formation], object]] = {
    "date": _date_key,
    "price": _price_key,
    "title": _title_key,
}


def sort_formations(formations: List[Formation], sort: str, order: str) -> List[Formation]:
    """Stable sort; equal keys keep their original relative order in both directions."""
    key = _SORT_KEYS.get(sort, _date_key)
    return sorted(formations, key=key, reverse=order == "desc")


def sanitize_formation(formation: Formation) -> FormationOut:
    return FormationOut(
        id=formation.id,
        title=strip_markup(formation.title),
        description=strip_markup(formation.description),
        category=strip_markup(formation.category),
        level=strip_markup(formation.level),
        duration=formation.duration,
        price=formation.price,
        image=safe_url(formation.image),
        date=formation.date,
        instructor=strip_markup(formation.instructor),
    )


def sanitize_hero(hero: Hero) -> HeroOut:
    return HeroOut(
        title=strip_markup(hero.title),
        subtitle=strip_markup(hero.subtitle),
        cta=CallToActionOut(text=strip_markup(hero.cta.text), link=safe_url(hero.cta.link)),
    )


def build_page_url(base_url: Optional[str], req: HomepageQuery, page: int) -> Optional[str]:
    """Return a shareable link to *page* that keeps the active filters and sort."""
    if not base_url:
        return None
    params = {"page": page, "limit": req.limit}
    if req.category:
        params["category"] = req.category
    if req.level:
        params["level"] = req.level
    params["sort"] = req.sort
    params["order"] = req.order
    return f"{base_url.split('?', 1)[0]}?{urlencode(params)}"

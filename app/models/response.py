from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Number = Union[int, float]


class _CamelModel(BaseModel):
    """Serialises field names as camelCase (``total_pages`` -> ``totalPages``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CallToActionOut(_CamelModel):
    text: str
    link: str


class HeroOut(_CamelModel):
    title: str
    subtitle: str
    cta: CallToActionOut


class FormationOut(_CamelModel):
    id: int
    title: str
    description: str
    category: str
    level: str
    duration: Optional[Number] = None
    price: Optional[Number] = None
    image: str
    date: str
    instructor: str


class PageInfo(_CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    next_page: Optional[int] = None
    prev_page: Optional[int] = None
    next_url: Optional[str] = None
    prev_url: Optional[str] = None


class HomepagePayload(_CamelModel):
    hero: HeroOut
    formations: List[FormationOut]
    pagination: PageInfo


class CacheMetrics(_CamelModel):
    hits: int = 0
    misses: int = 0
    loads: int = 0
    last_load_ms: float = 0
    last_load_at: Optional[str] = None
    """ISO-8601 UTC timestamp of the last load attempt, successful or not."""


class HomepageResponse(_CamelModel):
    success: bool = True
    data: HomepagePayload


class MetricsResponse(_CamelModel):
    success: bool = True
    data: CacheMetrics


class ErrorResponse(_CamelModel):
    success: bool = False
    error: str

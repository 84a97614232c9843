from typing import List, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict

Number = Union[int, float]


class Diagnostic(NamedTuple):
    """A repair or validation note produced while normalizing content."""

    path: str
    message: str


class CallToAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    link: str = ""


class Hero(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    subtitle: str = ""
    cta: CallToAction = CallToAction()


class Formation(BaseModel):
    """One catalog entry after normalization."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str = ""
    description: str = ""
    category: str = ""
    level: str = ""
    duration: Optional[Number] = None
    price: Optional[Number] = None
    image: str = ""
    date: str = ""
    instructor: str = ""


class HomepageContent(BaseModel):
    """Validated homepage content as held by the cache.

    Instances are frozen; query code builds new objects instead of mutating.
    """

    model_config = ConfigDict(frozen=True)

    hero: Hero = Hero()
    formations: List[Formation] = []

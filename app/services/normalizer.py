"""Validation and repair of raw homepage JSON.

:func:`normalize` turns whatever was parsed from the content file into a
:class:`~app.models.content.HomepageContent` and a list of diagnostics.  It
never raises: every defect is repaired to a safe default and reported, and a
formation is never dropped.
"""

import datetime as dt
import math
import re
from typing import Any, List, Optional, Set, Tuple

from app.models.content import CallToAction, Diagnostic, Formation, Hero, HomepageContent, Number
from app.services.sanitizer import safe_url

_ISO_DATE_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}", re.ASCII)


def clean_text(value: Any) -> str:
    """Coerce *value* to a trimmed string; ``None`` becomes ``""``."""
    if value is None:
        return ""
    return str(value).strip()


def parse_number(value: Any) -> Optional[Number]:
    """Return *value* as a finite int/float, or ``None`` when it is not numeric.

    Numeric strings are accepted; booleans are not.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return None
    else:
        return None
    if isinstance(number, float) and not math.isfinite(number):
        return None
    return number


def parse_id(value: Any) -> Optional[int]:
    """Return *value* as a non-negative integer id, or ``None``."""
    number = parse_number(value)
    if number is None or number < 0:
        return None
    if isinstance(number, float):
        if not number.is_integer():
            return None
        number = int(number)
    return number


def is_iso_date(value: str) -> bool:
    """True for ISO dates or datetimes starting with a real ``YYYY-MM-DD`` date.

    The whole value must parse: ``"2025-03-10garbage"`` is rejected.
    """
    if not _ISO_DATE_PREFIX_RE.match(value):
        return False
    try:
        dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            dt.date.fromisoformat(value)
        except ValueError:
            return False
    return True


def normalize(raw: Any) -> Tuple[HomepageContent, List[Diagnostic]]:
    """Validate *raw* and return normalized content plus diagnostics."""
    diagnostics: List[Diagnostic] = []

    if not isinstance(raw, dict):
        diagnostics.append(Diagnostic("/", "Root must be an object"))
        return HomepageContent(), diagnostics

    hero = _normalize_hero(raw.get("hero"), diagnostics)

    items = raw.get("formations")
    if not isinstance(items, list):
        diagnostics.append(Diagnostic("formations", "formations must be an array"))
        items = []

    formations = _normalize_formations(items, diagnostics)
    return HomepageContent(hero=hero, formations=formations), diagnostics


def _mapping(value: Any, path: str, diagnostics: List[Diagnostic]) -> dict:
    """Return *value* if it is a mapping; ``{}`` otherwise (reported unless absent)."""
    if isinstance(value, dict):
        return value
    if value is not None:
        diagnostics.append(Diagnostic(path, f"{path} must be an object"))
    return {}


def _normalize_hero(value: Any, diagnostics: List[Diagnostic]) -> Hero:
    hero = _mapping(value, "hero", diagnostics)
    cta = _mapping(hero.get("cta"), "hero.cta", diagnostics)

    title = clean_text(hero.get("title"))
    if not title:
        diagnostics.append(Diagnostic("hero.title", "Hero title is missing or empty"))

    raw_link = cta.get("link")
    link = safe_url(raw_link)
    if not link and clean_text(raw_link):
        diagnostics.append(Diagnostic("hero.cta.link", "Invalid call-to-action link"))

    return Hero(
        title=title,
        subtitle=clean_text(hero.get("subtitle")),
        cta=CallToAction(text=clean_text(cta.get("text")), link=link),
    )


def _normalize_formations(items: List[Any], diagnostics: List[Diagnostic]) -> List[Formation]:
    # Watermark over the ids present in the input; fresh ids are always above it
    max_id = 0
    for item in items:
        if isinstance(item, dict):
            item_id = parse_id(item.get("id"))
            if item_id is not None and item_id > max_id:
                max_id = item_id

    seen: Set[int] = set()
    formations: List[Formation] = []
    for index, item in enumerate(items):
        path = f"formations[{index}]"
        if not isinstance(item, dict):
            diagnostics.append(Diagnostic(path, "Formation must be an object"))
            item = {}

        item_id = parse_id(item.get("id"))
        if item_id is None:
            max_id += 1
            item_id = max_id
            diagnostics.append(Diagnostic(f"{path}.id", f"Missing or invalid id, assigned {item_id}"))
        elif item_id in seen:
            max_id += 1
            diagnostics.append(
                Diagnostic(f"{path}.id", f"Duplicate id {item_id}, reassigned to {max_id}")
            )
            item_id = max_id
        seen.add(item_id)
        max_id = max(max_id, item_id)

        formations.append(_normalize_formation(item, item_id, path, diagnostics))

    return formations


def _normalize_formation(
    item: dict, item_id: int, path: str, diagnostics: List[Diagnostic]
) -> Formation:
    title = clean_text(item.get("title"))
    category = clean_text(item.get("category"))
    level = clean_text(item.get("level"))
    for field, value in (("title", title), ("category", category), ("level", level)):
        if not value:
            diagnostics.append(Diagnostic(f"{path}.{field}", f"Missing or empty {field}"))

    duration = _non_negative(item.get("duration"), f"{path}.duration", "duration", diagnostics)
    price = _non_negative(item.get("price"), f"{path}.price", "price", diagnostics)

    raw_image = item.get("image")
    image = safe_url(raw_image)
    if not image and raw_image not in (None, ""):
        diagnostics.append(Diagnostic(f"{path}.image", "Invalid image URL"))

    raw_date = clean_text(item.get("date"))
    date = raw_date if is_iso_date(raw_date) else ""
    if raw_date and not date:
        diagnostics.append(
            Diagnostic(f"{path}.date", "Invalid date format (expected ISO YYYY-MM-DD)")
        )

    return Formation(
        id=item_id,
        title=title,
        description=clean_text(item.get("description")),
        category=category,
        level=level,
        duration=duration,
        price=price,
        image=image,
        date=date,
        instructor=clean_text(item.get("instructor")),
    )


def _non_negative(
    value: Any, path: str, label: str, diagnostics: List[Diagnostic]
) -> Optional[Number]:
    """Absent values stay ``None`` silently; invalid or negative ones are reported."""
    if value is None:
        return None
    number = parse_number(value)
    if number is None or number < 0:
        diagnostics.append(Diagnostic(path, f"Invalid {label}"))
        return None
    return number

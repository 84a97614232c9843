"""Tests for app.services.normalizer.normalize."""

import pytest

from app.models.content import Hero, HomepageContent
from app.services.normalizer import is_iso_date, normalize, parse_id, parse_number


def _formation(**overrides):
    item = {
        "id": 1,
        "title": "React pour débutants",
        "description": "Composants et hooks.",
        "category": "Web",
        "level": "Débutant",
        "duration": 21,
        "price": 890,
        "image": "/images/react.jpg",
        "date": "2025-03-10",
        "instructor": "Camille Laurent",
    }
    item.update(overrides)
    return item


def _raw(formations, hero=None):
    return {
        "hero": hero
        or {"title": "Bienvenue", "subtitle": "Sous-titre", "cta": {"text": "Go", "link": "/go"}},
        "formations": formations,
    }


def _paths(diagnostics):
    return [d.path for d in diagnostics]


class TestValidContent:
    def test_valid_content_has_no_diagnostics(self):
        content, diagnostics = normalize(_raw([_formation(id=1), _formation(id=2)]))
        assert diagnostics == []
        assert [f.id for f in content.formations] == [1, 2]
        assert content.hero.cta.link == "/go"

    def test_strings_are_trimmed(self):
        content, _ = normalize(_raw([_formation(title="  Spaced  ", instructor=" Ana ")]))
        assert content.formations[0].title == "Spaced"
        assert content.formations[0].instructor == "Ana"

    def test_normalizing_twice_is_idempotent(self):
        raw = _raw([_formation(id=3, price="12.5"), _formation(id=7, duration="14")])
        first, _ = normalize(raw)
        second, diagnostics = normalize(first.model_dump())
        assert diagnostics == []
        assert second == first


class TestRootAndContainers:
    def test_non_object_root_returns_empty_hero(self):
        content, diagnostics = normalize(["not", "an", "object"])
        assert content == HomepageContent()
        assert content.hero == Hero()
        assert _paths(diagnostics) == ["/"]

    def test_none_root(self):
        content, diagnostics = normalize(None)
        assert content.formations == []
        assert len(diagnostics) == 1

    def test_formations_not_a_list(self):
        content, diagnostics = normalize({"hero": {"title": "X"}, "formations": "nope"})
        assert content.formations == []
        assert "formations" in _paths(diagnostics)

    def test_missing_formations_reported(self):
        _, diagnostics = normalize({"hero": {"title": "X"}})
        assert "formations" in _paths(diagnostics)

    def test_hero_missing_title(self):
        content, diagnostics = normalize(_raw([], hero={"subtitle": "Only subtitle"}))
        assert content.hero.title == ""
        assert content.hero.subtitle == "Only subtitle"
        assert "hero.title" in _paths(diagnostics)

    def test_hero_wrong_type(self):
        content, diagnostics = normalize({"hero": "banner", "formations": []})
        assert content.hero == Hero()
        assert "hero" in _paths(diagnostics)

    def test_hero_invalid_cta_link(self):
        content, diagnostics = normalize(
            _raw([], hero={"title": "X", "cta": {"text": "Go", "link": "javascript:void(0)"}})
        )
        assert content.hero.cta.link == ""
        assert content.hero.cta.text == "Go"
        assert "hero.cta.link" in _paths(diagnostics)

    def test_non_object_formation_is_kept(self):
        content, diagnostics = normalize(_raw([_formation(id=4), "garbage"]))
        assert len(content.formations) == 2
        assert content.formations[1].id == 5
        assert "formations[1]" in _paths(diagnostics)


class TestIdRepair:
    def test_duplicate_id_is_reassigned(self):
        content, diagnostics = normalize(_raw([_formation(id=1), _formation(id=1)]))
        ids = [f.id for f in content.formations]
        assert ids[0] == 1
        assert ids[1] > 1
        duplicates = [d for d in diagnostics if "Duplicate" in d.message]
        assert len(duplicates) == 1
        assert duplicates[0].path == "formations[1].id"

    def test_missing_and_invalid_ids_get_fresh_ids(self):
        content, diagnostics = normalize(
            _raw([_formation(id=5), _formation(id=None), _formation(id="x"), _formation(id=5)])
        )
        assert [f.id for f in content.formations] == [5, 6, 7, 8]
        assert _paths(diagnostics) == ["formations[1].id", "formations[2].id", "formations[3].id"]

    def test_reassigned_ids_do_not_collide(self):
        content, _ = normalize(_raw([_formation(id=1), _formation(id=1), _formation(id=1)]))
        assert [f.id for f in content.formations] == [1, 2, 3]

    def test_fresh_ids_exceed_every_original_id(self):
        content, _ = normalize(_raw([_formation(id=None), _formation(id=10), _formation(id=2)]))
        assert [f.id for f in content.formations] == [11, 10, 2]

    def test_numeric_string_and_integral_float_ids_accepted(self):
        content, diagnostics = normalize(_raw([_formation(id="4"), _formation(id=9.0)]))
        assert [f.id for f in content.formations] == [4, 9]
        assert diagnostics == []

    @pytest.mark.parametrize("bad_id", [True, -3, 2.5, "", [1], {"id": 1}])
    def test_unusable_ids_are_replaced(self, bad_id):
        content, diagnostics = normalize(_raw([_formation(id=bad_id)]))
        assert content.formations[0].id == 1
        assert "formations[0].id" in _paths(diagnostics)

    @pytest.mark.parametrize(
        "ids",
        [
            [1, 1, 1, 1],
            [None, None, 3, 3],
            [0, 0, "0", None],
            [100, "abc", 100, -1, 2.5, 101],
        ],
    )
    def test_output_ids_unique_and_order_preserved(self, ids):
        items = [_formation(id=i, title=f"T{n}") for n, i in enumerate(ids)]
        content, _ = normalize(_raw(items))
        out_ids = [f.id for f in content.formations]
        assert len(set(out_ids)) == len(out_ids)
        assert all(isinstance(i, int) and i >= 0 for i in out_ids)
        assert [f.title for f in content.formations] == [f"T{n}" for n in range(len(ids))]


class TestFieldRules:
    def test_empty_required_fields_are_reported_and_kept(self):
        content, diagnostics = normalize(_raw([_formation(title=" ", category="", level=None)]))
        formation = content.formations[0]
        assert (formation.title, formation.category, formation.level) == ("", "", "")
        assert set(_paths(diagnostics)) == {
            "formations[0].title",
            "formations[0].category",
            "formations[0].level",
        }

    def test_negative_and_invalid_numbers_become_none(self):
        content, diagnostics = normalize(_raw([_formation(duration=-1, price="cheap")]))
        assert content.formations[0].duration is None
        assert content.formations[0].price is None
        assert set(_paths(diagnostics)) == {"formations[0].duration", "formations[0].price"}

    def test_absent_numbers_are_none_without_diagnostic(self):
        item = _formation()
        del item["price"]
        content, diagnostics = normalize(_raw([item]))
        assert content.formations[0].price is None
        assert diagnostics == []

    def test_numeric_strings_are_converted(self):
        content, _ = normalize(_raw([_formation(price="12.5", duration="21")]))
        assert content.formations[0].price == 12.5
        assert content.formations[0].duration == 21

    def test_javascript_image_rejected(self):
        content, diagnostics = normalize(_raw([_formation(image="javascript:alert(1)")]))
        assert content.formations[0].image == ""
        assert "formations[0].image" in _paths(diagnostics)

    @pytest.mark.parametrize(
        "image",
        ["data:image/png;base64,AAAA", "images/react.jpg", "ftp://example.com/a.jpg", "http://", 42],
    )
    def test_other_bad_images_rejected(self, image):
        content, diagnostics = normalize(_raw([_formation(image=image)]))
        assert content.formations[0].image == ""
        assert "formations[0].image" in _paths(diagnostics)

    @pytest.mark.parametrize("image", ["/img/a.png", "https://cdn.example.com/a.png", "HTTP://x.io/a"])
    def test_good_images_kept(self, image):
        content, diagnostics = normalize(_raw([_formation(image=image)]))
        assert content.formations[0].image == image
        assert diagnostics == []

    def test_missing_image_is_silent(self):
        content, diagnostics = normalize(_raw([_formation(image=None)]))
        assert content.formations[0].image == ""
        assert diagnostics == []

    def test_invalid_date_cleared(self):
        content, diagnostics = normalize(_raw([_formation(date="10/03/2025")]))
        assert content.formations[0].date == ""
        assert "formations[0].date" in _paths(diagnostics)

    def test_impossible_calendar_date_cleared(self):
        content, diagnostics = normalize(_raw([_formation(date="2025-02-30")]))
        assert content.formations[0].date == ""
        assert "formations[0].date" in _paths(diagnostics)

    def test_date_with_trailing_text_cleared(self):
        content, diagnostics = normalize(_raw([_formation(date="2025-03-10garbage")]))
        assert content.formations[0].date == ""
        assert "formations[0].date" in _paths(diagnostics)

    def test_datetime_string_kept(self):
        content, diagnostics = normalize(_raw([_formation(date="2025-03-10T09:00:00Z")]))
        assert content.formations[0].date == "2025-03-10T09:00:00Z"
        assert diagnostics == []


class TestHelpers:
    def test_parse_number(self):
        assert parse_number(3) == 3
        assert parse_number(" 2.5 ") == 2.5
        assert parse_number("nan") is None
        assert parse_number(float("inf")) is None
        assert parse_number(False) is None
        assert parse_number(None) is None

    def test_parse_id(self):
        assert parse_id("7") == 7
        assert parse_id(7.0) == 7
        assert parse_id(-1) is None
        assert parse_id(1.5) is None

    def test_is_iso_date(self):
        assert is_iso_date("2024-02-29")
        assert not is_iso_date("2023-02-29")
        assert not is_iso_date("March 3rd")
        assert not is_iso_date("2025-03-10 plus notes")
        assert is_iso_date("2025-03-10T09:30:00+02:00")

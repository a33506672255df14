import pytest

from app.utils.slug import generate_slug, make_unique_slug


@pytest.mark.parametrize("text,expected", [
    ("Electronics", "electronics"),
    ("  Home   Appliances  ", "home-appliances"),
    ("Kids' Toys & Games", "kids-toys-games"),
    ("Café Crème", "cafe-creme"),
    ("snake_case name", "snakecase-name"),
    ("--Already--Hyphenated--", "already-hyphenated"),
    ("TV / Audio", "tv-audio"),
    ("4K Monitors", "4k-monitors"),
])
def test_generate_slug(text, expected):
    assert generate_slug(text) == expected


def test_generate_slug_without_usable_characters_is_empty():
    assert generate_slug("!!! ???") == ""
    assert generate_slug("") == ""


def test_make_unique_slug_appends_counter_until_free():
    taken = {"electronics", "electronics-1", "electronics-2"}
    assert make_unique_slug("electronics", taken.__contains__) == "electronics-3"


def test_make_unique_slug_returns_base_when_free():
    assert make_unique_slug("garden", lambda slug: False) == "garden"


def test_make_unique_slug_uses_fallback_for_empty_base():
    slug = make_unique_slug("", lambda slug: False, fallback="1b2c3d4e")
    assert slug == "category-1b2c3d4e"


def test_make_unique_slug_uses_fallback_for_short_base():
    slug = make_unique_slug("a", lambda slug: False, fallback="1b2c3d4e", min_length=2)
    assert slug == "category-1b2c3d4e"
    assert make_unique_slug("ab", lambda slug: False, fallback="1b2c3d4e", min_length=2) == "ab"


def test_make_unique_slug_respects_max_length():
    base = "a" * 20
    taken = {"a" * 10}
    slug = make_unique_slug(base, taken.__contains__, max_length=10)
    assert slug == "a" * 8 + "-1"
    assert len(slug) <= 10

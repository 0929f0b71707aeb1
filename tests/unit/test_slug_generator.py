"""
Slug normalization and collision handling.
"""

from __future__ import annotations

import re

import pytest

from src.components.entries import SlugConfig, SlugGenerator, normalize_slug
from src.core.entities import Entry


class MemoryEntryLocales:
    """Just enough of EntryLocaleRepoPort for slug lookups."""

    def __init__(self) -> None:
        self.rows: list[tuple[int, int, str, str]] = []  # (entry_id, section_id, locale, slug)

    def add(self, entry_id: int, slug: str, section_id: int = 1, locale: str = "en") -> None:
        self.rows.append((entry_id, section_id, locale, slug))

    def slug_exists(
        self,
        section_id: int,
        locale: str,
        slug: str,
        exclude_entry_id: int | None = None,
    ) -> bool:
        return any(
            s == section_id and loc == locale and sl == slug and e != exclude_entry_id
            for e, s, loc, sl in self.rows
        )


@pytest.fixture
def locales() -> MemoryEntryLocales:
    return MemoryEntryLocales()


@pytest.fixture
def generator(locales: MemoryEntryLocales) -> SlugGenerator:
    return SlugGenerator(locales)


def _entry(title: str = "", slug: str | None = None, **kw: object) -> Entry:
    return Entry(section_id=1, locale="en", title=title, slug=slug, **kw)


class TestNormalizeSlug:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Hello World", "hello-world"),
            ("  Hello,   World!  ", "hello-world"),
            ("<b>Bold</b> move", "bold-move"),
            ("Crème Brûlée", "crème-brûlée"),
            ("Ünïcödé 123", "ünïcödé-123"),
            ("snake_case_title", "snake-case-title"),
            ("Привет мир", "привет-мир"),
            ("a--b", "a-b"),
        ],
    )
    def test_normalizes(self, text: str, expected: str) -> None:
        assert normalize_slug(text) == expected

    @pytest.mark.parametrize("text", ["", None, "!!!", "<p></p>", "   "])
    def test_empty_result(self, text: str | None) -> None:
        assert normalize_slug(text) == ""

    @pytest.mark.parametrize("text", ["Hello World", "Crème <i>Brûlée</i>", "x_y z-1"])
    def test_idempotent(self, text: str) -> None:
        once = normalize_slug(text)
        assert normalize_slug(once) == once

    def test_tags_are_removed_not_split(self) -> None:
        """Tag contents never leak into the slug."""
        assert normalize_slug('<a href="x">Link</a> text') == "link-text"


class TestSlugGenerator:
    def test_explicit_slug_wins_over_title(self, generator: SlugGenerator) -> None:
        assert generator.generate(_entry("Title Here", slug="Custom Slug")) == "custom-slug"

    def test_title_used_when_slug_missing(self, generator: SlugGenerator) -> None:
        assert generator.generate(_entry("Hello World")) == "hello-world"

    def test_empty_slug_skips_uniqueness(
        self, generator: SlugGenerator, locales: MemoryEntryLocales
    ) -> None:
        locales.add(5, "")
        assert generator.generate(_entry("???")) == ""

    def test_collision_appends_counter(
        self, generator: SlugGenerator, locales: MemoryEntryLocales
    ) -> None:
        locales.add(1, "hello-world")
        assert generator.generate(_entry("Hello World")) == "hello-world-1"

        locales.add(2, "hello-world-1")
        assert generator.generate(_entry("Hello World")) == "hello-world-2"

    def test_first_free_suffix_is_used(
        self, generator: SlugGenerator, locales: MemoryEntryLocales
    ) -> None:
        """Candidates are tried in order, so a gap at -2 is filled before -4."""
        locales.add(1, "post")
        locales.add(2, "post-1")
        locales.add(3, "post-3")
        assert generator.generate(_entry("Post")) == "post-2"

    def test_own_slug_is_not_a_collision(
        self, generator: SlugGenerator, locales: MemoryEntryLocales
    ) -> None:
        locales.add(7, "hello-world")
        assert generator.generate(_entry("Hello World", id=7)) == "hello-world"

    def test_scope_is_section_and_locale(
        self, generator: SlugGenerator, locales: MemoryEntryLocales
    ) -> None:
        locales.add(1, "hello", section_id=2)
        locales.add(2, "hello", locale="de")
        assert generator.generate(_entry("Hello")) == "hello"

    def test_random_fallback_after_limit(self, locales: MemoryEntryLocales) -> None:
        config = SlugConfig(max_sequential_attempts=3, random_fallback=True, random_suffix_length=8)
        generator = SlugGenerator(locales, config)
        for i, slug in enumerate(["busy", "busy-1", "busy-2"]):
            locales.add(i + 1, slug)

        slug = generator.generate(_entry("Busy"))
        assert re.fullmatch(r"busy-[0-9a-f]{8}", slug)

    def test_sequence_continues_without_fallback(self, locales: MemoryEntryLocales) -> None:
        config = SlugConfig(max_sequential_attempts=2, random_fallback=False)
        generator = SlugGenerator(locales, config)
        for i, slug in enumerate(["busy", "busy-1", "busy-2", "busy-3"]):
            locales.add(i + 1, slug)

        assert generator.generate(_entry("Busy")) == "busy-4"

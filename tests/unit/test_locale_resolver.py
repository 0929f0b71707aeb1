from __future__ import annotations

import pytest

from src.components.entries import (
    InvalidConfigurationError,
    LocaleNotEnabledError,
    LocaleResolver,
)
from src.core.entities import Section, SectionLocale


def _section(type: str, **formats: str | None) -> Section:
    return Section(
        id=1,
        name="Pages",
        handle="pages",
        type=type,  # type: ignore[arg-type]
        locales={"en": SectionLocale(locale="en", **formats)},
    )


@pytest.fixture
def resolver() -> LocaleResolver:
    return LocaleResolver()


class TestResolve:
    def test_supported_locale(self, resolver: LocaleResolver) -> None:
        section = _section("channel", nested_url="news/{slug}")
        assert resolver.resolve(section, "en").nested_url == "news/{slug}"

    def test_unsupported_locale(self, resolver: LocaleResolver) -> None:
        with pytest.raises(LocaleNotEnabledError) as exc:
            resolver.resolve(_section("channel"), "fr")
        assert "Pages" in str(exc.value)
        assert "fr" in str(exc.value)


class TestUriFormat:
    def test_single_uses_url_format(self, resolver: LocaleResolver) -> None:
        section = _section("single", url_format="about", nested_url="ignored/{slug}")
        assert resolver.uri_format_for(section, "en", has_parent=True) == "about"

    def test_channel_uses_nested_url(self, resolver: LocaleResolver) -> None:
        section = _section("channel", nested_url="news/{slug}", nested_url_format="x/{slug}")
        assert resolver.uri_format_for(section, "en", has_parent=True) == "news/{slug}"

    def test_structure_with_parent(self, resolver: LocaleResolver) -> None:
        section = _section("structure", nested_url="{slug}", nested_url_format="{parent.uri}/{slug}")
        assert resolver.uri_format_for(section, "en", has_parent=True) == "{parent.uri}/{slug}"
        assert resolver.uri_format_for(section, "en", has_parent=False) == "{slug}"

    @pytest.mark.parametrize("url_format", [None, "", "news/{id}"])
    def test_format_without_slug_rejected(
        self, resolver: LocaleResolver, url_format: str | None
    ) -> None:
        with pytest.raises(InvalidConfigurationError, match="valid URL Format"):
            resolver.require_slug_placeholder(_section("channel"), url_format)

    def test_format_with_slug_accepted(self, resolver: LocaleResolver) -> None:
        assert resolver.require_slug_placeholder(_section("channel"), "a/{slug}") == "a/{slug}"

"""
Locale resolution for sections.

A section declares the locales it supports, each with its own URL formats:
- url_format: the fixed URI of a Single section
- nested_url: URI format for entries without a parent
- nested_url_format: URI format for Structure entries that have a parent
"""

from __future__ import annotations

from src.core.entities import Section, SectionLocale

from .models import InvalidConfigurationError, LocaleNotEnabledError

SLUG_PLACEHOLDER = "{slug}"


class LocaleResolver:
    """Validates section locale support and picks per-locale URL formats."""

    def resolve(self, section: Section, locale: str) -> SectionLocale:
        section_locale = section.locales.get(locale)
        if section_locale is None:
            raise LocaleNotEnabledError(section.name, locale)
        return section_locale

    def uri_format_for(self, section: Section, locale: str, has_parent: bool) -> str | None:
        section_locale = self.resolve(section, locale)
        if section.is_single:
            return section_locale.url_format
        if section.is_structure and has_parent:
            return section_locale.nested_url_format
        return section_locale.nested_url

    def require_slug_placeholder(self, section: Section, url_format: str | None) -> str:
        """
        Guard against URL formats that would produce non-unique URIs.

        Section validation should prevent this, but the format is not
        enforced by storage.
        """
        if not url_format or SLUG_PLACEHOLDER not in url_format:
            raise InvalidConfigurationError(
                f"The section '{section.name}' doesn't have a valid URL Format."
            )
        return url_format

"""Supported locales and request locale resolution."""

from typing import Literal, TypeGuard

Locale = Literal["en", "es"]

SUPPORTED_LOCALES: tuple[Locale, ...] = ("en", "es")
DEFAULT_LOCALE: Locale = "en"

LOCALE_NAMES: dict[Locale, str] = {
    "en": "English",
    "es": "Español",
}


def is_valid_locale(value: object) -> TypeGuard[Locale]:
    """Check whether a value is one of the supported locale codes."""
    return isinstance(value, str) and value in SUPPORTED_LOCALES


def parse_accept_language(header: str) -> list[str]:
    """Return the primary language subtags of an Accept-Language header.

    Entries are ordered by quality value (highest first); entries with equal
    quality keep their header order. A quality of zero marks a language as
    not acceptable, so such entries (and unparseable qualities) are dropped.

    Args:
        header: Raw header value, e.g. "es-MX,es;q=0.9,en;q=0.8".

    Returns:
        list[str]: Lowercase primary subtags, e.g. ["es", "es", "en"].
    """
    weighted: list[tuple[float, int, str]] = []
    for position, part in enumerate(header.split(",")):
        tag, _, params = part.strip().partition(";")
        if not tag or tag == "*":
            continue
        quality = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                quality = float(params[2:])
            except ValueError:
                quality = 0.0
        if quality <= 0:
            continue
        weighted.append((-quality, position, tag.split("-")[0].lower()))

    return [tag for _, _, tag in sorted(weighted)]


def resolve_locale(
    query_locale: str | None = None,
    cookie_locale: str | None = None,
    accept_language: str | None = None,
    default: Locale = DEFAULT_LOCALE,
) -> Locale:
    """Determine the locale for a request.

    Priority: explicit query parameter, locale cookie, Accept-Language
    header, then the default.
    """
    if is_valid_locale(query_locale):
        return query_locale

    if is_valid_locale(cookie_locale):
        return cookie_locale

    if accept_language:
        for tag in parse_accept_language(accept_language):
            if is_valid_locale(tag):
                return tag

    return default

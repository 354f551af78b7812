"""Classify and canonicalize free-form enrichment input."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal
from urllib.parse import urlsplit

from app.services.errors import ValidationError

InputType = Literal["url", "email", "domain", "company_name"]

_EMAIL_DOMAIN = re.compile(r"@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")
_SCHEME_AND_WWW = re.compile(r"^(https?://)?(www\.)?")
_FORBIDDEN_HOST_CHARS = re.compile(r"[\s<>^|]")


@dataclass(frozen=True)
class Target:
    """Normalized enrichment subject."""

    raw_input: str
    normalized_url: str
    domain: str


def classify_input(value: str) -> InputType:
    """Best-effort classification used for the enrichment audit trail."""
    if "@" in value:
        return "email"
    if "." in value and " " not in value:
        return "url" if "://" in value else "domain"
    return "company_name"


def extract_domain_from_email(value: str) -> str | None:
    match = _EMAIL_DOMAIN.search(value)
    return match.group(1) if match else None


def normalize_url(value: str) -> str:
    """Return a canonical https URL for a URL, bare domain, or email address."""
    if "@" in value and "://" not in value:
        domain = extract_domain_from_email(value)
        if domain:
            return f"https://{domain}"
        raise ValidationError("Invalid email format")

    if not value.startswith("http://") and not value.startswith("https://"):
        return f"https://{value}"

    return value


def extract_domain(url: str) -> str:
    """Return the bare hostname of a URL without a leading ``www.``.

    Hosts a browser URL parser would reject, such as ones with spaces, fall back
    to plain prefix stripping and keep their original case.
    """
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        hostname = None
    if hostname and not _FORBIDDEN_HOST_CHARS.search(hostname):
        return hostname.removeprefix("www.")
    return _SCHEME_AND_WWW.sub("", url, count=1).split("/")[0]


def normalize(value: str) -> Target:
    """Normalize raw input into a Target.

    Raises ValidationError when an email-like input carries no usable domain.
    """
    trimmed = value.strip()
    normalized_url = normalize_url(trimmed)
    return Target(
        raw_input=trimmed,
        normalized_url=normalized_url,
        domain=extract_domain(normalized_url),
    )

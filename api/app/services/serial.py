"""Prefixed, globally unique serials for articles, versions and tags."""

import uuid

ARTICLE_SERIAL_PREFIX = "ART"
VERSION_SERIAL_PREFIX = "VER"
TAG_SERIAL_PREFIX = "TAG"


def generate_serial(prefix: str) -> str:
    """Return ``prefix`` followed by 24 upper-case hex characters of a UUID4."""
    if not prefix:
        raise ValueError("serial prefix is mandatory")
    return f"{prefix}{uuid.uuid4().hex[:24].upper()}"

# backend/utils/slug.py
import re

_DISALLOWED = re.compile(r"[^a-z0-9 _-]")
_SEPARATORS = re.compile(r"[\s_-]+")


def generate_slug(text: str) -> str:
    """Build a URL slug from a display name.

    "Zapatillas  Running_Pro!" -> "zapatillas-running-pro". The result only
    depends on ``text``; callers handle collisions themselves.
    """
    slug = (text or "").lower()
    slug = _DISALLOWED.sub("", slug)
    slug = _SEPARATORS.sub("-", slug)
    return slug.strip("-")


def generate_variant_sku(product_sku: str, size: str = None, color: str = None) -> str:
    parts = [product_sku]
    if size:
        parts.append(size.upper())
    if color:
        parts.append(color.upper()[:3])
    return "-".join(parts)

"""Field validators shared by request schemas."""

from __future__ import annotations


def validated_email(value: str, *, lowercase: bool = True) -> str:
    normalized = value.strip()
    if lowercase:
        normalized = normalized.lower()
    local, sep, domain = normalized.partition("@")
    if not sep or not local or "." not in domain or domain.endswith(".") or " " in normalized:
        raise ValueError("Invalid email address")
    return normalized


def stripped_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None

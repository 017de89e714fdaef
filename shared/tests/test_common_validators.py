"""Tests for shared field validators."""

from __future__ import annotations

import pytest
from iobic.schemas.common import stripped_or_none, validated_email


def test_email_is_trimmed_and_lowercased():
    assert validated_email("  Maria@Bistro.Example ") == "maria@bistro.example"


def test_email_case_can_be_kept():
    assert validated_email("Maria@Bistro.Example", lowercase=False) == "Maria@Bistro.Example"


@pytest.mark.parametrize("value", ["", "maria", "maria@", "@bistro.example", "maria@bistro", "m aria@b.example"])
def test_invalid_emails(value):
    with pytest.raises(ValueError):
        validated_email(value)


def test_stripped_or_none():
    assert stripped_or_none(None) is None
    assert stripped_or_none("   ") is None
    assert stripped_or_none(" hi ") == "hi"

"""
Tests for keyword masking.

Tests exact, case-insensitive key masking over nested mappings.
"""

import copy
from typing import Any, Dict

import pytest

from treblle_forwarder.core.masking import (
    BUILTIN_MASK_KEYWORDS,
    MASK,
    MaskingEngine,
    MaskKeywordSet,
    mask_keyword,
)


@pytest.fixture
def payload_data() -> Dict[str, Any]:
    """Serialized data section with sensitive fields at several depths."""
    return {
        "request": {
            "headers": {"Authorization": "Bearer abc", "Accept": "*/*"},
            "body": {
                "Password": "hunter2",
                "username": "ana",
                "billing": {"CARD_NUMBER": "4111111111111111", "city": "Split"},
                "items": [{"password": "in-a-list"}],
            },
        },
        "response": {"body": {"ssn": "123-45-6789", "id": 17}},
        "server": {"signature": "gw"},
        "errors": [{"message": "secret leaked"}],
    }


class TestMaskKeywordSet:
    """Test keyword set construction."""

    def test_builtin_keywords(self) -> None:
        keywords = MaskKeywordSet.from_config(None)
        assert list(keywords) == list(BUILTIN_MASK_KEYWORDS)

    def test_additional_keywords_appended(self) -> None:
        keywords = MaskKeywordSet.from_config("authorization, api_token,,")
        assert list(keywords)[-2:] == ["authorization", "api_token"]
        assert len(keywords) == len(BUILTIN_MASK_KEYWORDS) + 2

    def test_duplicates_ignored_case_insensitively(self) -> None:
        keywords = MaskKeywordSet.from_config("PASSWORD,Token,token")
        assert list(keywords).count("password") == 1
        assert "PASSWORD" not in list(keywords)
        assert list(keywords)[-1] == "Token"

    def test_membership_ignores_case(self) -> None:
        assert "Pwd" in MaskKeywordSet()


class TestMaskKeyword:
    """Test single-keyword masking."""

    def test_case_insensitive(self) -> None:
        data = {"Password": "a", "PASSWORD": "b", "password": "c", "passwords": "d"}
        assert mask_keyword(data, "password") == 3
        assert data == {"Password": MASK, "PASSWORD": MASK, "password": MASK, "passwords": "d"}

    def test_nested_mapping(self) -> None:
        data = {"outer": {"inner": {"secret": "x"}}}
        mask_keyword(data, "secret")
        assert data["outer"]["inner"]["secret"] == MASK

    def test_matching_container_replaced_whole(self) -> None:
        data = {"secret": {"nested": "value"}}
        mask_keyword(data, "secret")
        assert data == {"secret": MASK}

    def test_lists_not_descended(self) -> None:
        data = {"items": [{"password": "x"}]}
        assert mask_keyword(data, "password") == 0
        assert data["items"][0]["password"] == "x"


class TestMaskingEngine:
    """Test masking over the whole data tree."""

    def test_masks_configured_keys(self, payload_data: Dict[str, Any]) -> None:
        engine = MaskingEngine(MaskKeywordSet.from_config("authorization"))
        masked = engine.mask(payload_data)

        assert masked is payload_data
        assert masked["request"]["headers"]["Authorization"] == MASK
        assert masked["request"]["headers"]["Accept"] == "*/*"
        assert masked["request"]["body"]["Password"] == MASK
        assert masked["request"]["body"]["billing"]["CARD_NUMBER"] == MASK
        assert masked["request"]["body"]["billing"]["city"] == "Split"
        assert masked["response"]["body"]["ssn"] == MASK
        assert masked["response"]["body"]["id"] == 17

    def test_values_inside_lists_escape(self, payload_data: Dict[str, Any]) -> None:
        masked = MaskingEngine(MaskKeywordSet()).mask(payload_data)
        assert masked["request"]["body"]["items"][0]["password"] == "in-a-list"
        assert masked["errors"][0]["message"] == "secret leaked"

    def test_idempotent(self, payload_data: Dict[str, Any]) -> None:
        engine = MaskingEngine(MaskKeywordSet.from_config("authorization"))
        once = copy.deepcopy(engine.mask(payload_data))
        twice = engine.mask(payload_data)
        assert twice == once

    def test_unrelated_keys_untouched(self) -> None:
        data = {"request": {"body": {"username": "ana", "description": "pwd reset"}}}
        expected = copy.deepcopy(data)
        assert MaskingEngine(MaskKeywordSet()).mask(data) == expected

"""Tests for sigscan.canonical."""

from __future__ import annotations

import pytest

from sigscan.canonical import canonicalize, event_topic, function_selector, normalize_type
from sigscan.models import Parameter


def test_normalize_type_is_whitespace_insensitive() -> None:
    assert normalize_type("uint256 [ ]") == normalize_type("uint256[]") == "uint256[]"
    assert normalize_type(" address ") == "address"
    assert normalize_type("bytes32 [ 4 ]") == "bytes32[4]"
    assert normalize_type("uint8[][ ]") == "uint8[][]"


def test_canonicalize_drops_names_and_indexed_markers() -> None:
    params = [
        Parameter(name="from", type="address", indexed=True),
        Parameter(name="values", type="uint256 [ ]", indexed=False),
    ]
    assert canonicalize("Moved", params) == "Moved(address,uint256[])"


def test_canonicalize_handles_degenerate_input() -> None:
    assert canonicalize("", []) == "()"
    assert canonicalize("ping", []) == "ping()"


@pytest.mark.parametrize(
    ("signature", "selector"),
    [
        ("transfer(address,uint256)", "0xa9059cbb"),
        ("approve(address,uint256)", "0x095ea7b3"),
        ("balanceOf(address)", "0x70a08231"),
        ("", "0xc5d24601"),
    ],
)
def test_function_selector_known_values(signature: str, selector: str) -> None:
    assert function_selector(signature) == selector


def test_event_topic_is_full_keccak_digest() -> None:
    topic = event_topic("Transfer(address,address,uint256)")
    assert topic == "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
    assert len(topic) == 66
    assert topic.startswith(function_selector("Transfer(address,address,uint256)"))

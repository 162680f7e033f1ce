"""Composite identifier resolution."""

from coinpulse.core.types import CoinRef
from coinpulse.market.identifiers import resolve


def test_trailing_numeric_token_becomes_numeric_id() -> None:
    ref = resolve("bitcoin-1")

    assert ref == CoinRef(raw_id="bitcoin-1", numeric_id="1", symbol="BITCOIN")
    assert ref.primary_params() == {"id": "1"}
    assert ref.slug_token() == "bitcoin"


def test_multi_token_names_keep_their_hyphens() -> None:
    ref = resolve("shiba-inu-5994")

    assert ref.numeric_id == "5994"
    assert ref.symbol == "SHIBA-INU"
    assert ref.slug_token() == "shiba"


def test_bare_symbol_is_upper_cased() -> None:
    ref = resolve("eth")

    assert ref.numeric_id is None
    assert ref.symbol == "ETH"
    assert ref.primary_params() == {"symbol": "ETH"}


def test_non_numeric_suffix_is_part_of_the_symbol() -> None:
    ref = resolve("usd-coin")

    assert ref.numeric_id is None
    assert ref.symbol == "USD-COIN"


def test_blank_identifier_never_fails() -> None:
    ref = resolve("   ")

    assert ref.numeric_id is None
    assert ref.symbol == ""
    assert ref.slug_token() == ""


def test_non_ascii_digits_are_not_a_numeric_id() -> None:
    ref = resolve("bitcoin-²")

    assert ref.numeric_id is None
    assert ref.symbol == "BITCOIN-²"

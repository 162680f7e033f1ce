"""Settings validation: the API key is a startup requirement."""

import pytest
from pydantic import ValidationError

from coinpulse.core.config import Settings


def test_missing_api_key_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("COINMARKETCAP_API_KEY", raising=False)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_blank_api_key_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, COINMARKETCAP_API_KEY="   ")


def test_base_urls_lose_trailing_slash_and_poll_coins_are_deduplicated() -> None:
    settings = Settings(
        _env_file=None,
        COINMARKETCAP_API_KEY="k",
        COINMARKETCAP_BASE_URL="https://pro-api.coinmarketcap.com/",
        POLL_COINS="Bitcoin-1, ethereum-1027,,bitcoin-1",
        POLL_INTERVAL_S=5,
    )

    assert settings.COINMARKETCAP_BASE_URL == "https://pro-api.coinmarketcap.com"
    assert settings.poll_coins() == ("bitcoin-1", "ethereum-1027")
    assert settings.poll_interval_s() == 60.0

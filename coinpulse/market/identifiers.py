"""Resolve dashboard coin identifiers (``symbol-numericId``) into provider-ready forms."""

from coinpulse.core.types import CoinRef


def resolve(raw_id: str) -> CoinRef:
    """Split a composite identifier; never fails.

    ``bitcoin-1`` resolves to numeric id ``1`` and symbol ``BITCOIN``. Identifiers
    without a trailing numeric token are treated as a bare symbol, e.g. ``eth``
    resolves to symbol ``ETH``.
    """

    token = (raw_id or "").strip()
    if not token:
        return CoinRef(raw_id=token, numeric_id=None, symbol="")

    parts = token.split("-")
    if len(parts) >= 2 and parts[-1].isascii() and parts[-1].isdigit():
        return CoinRef(
            raw_id=token,
            numeric_id=parts[-1],
            symbol="-".join(parts[:-1]).upper() or None,
        )

    return CoinRef(raw_id=token, numeric_id=None, symbol=token.upper())

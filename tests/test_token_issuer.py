"""Tests for check-in token issuing."""

from datetime import timedelta

from kids_checkin.services.tokens import TokenIssuer
from tests.conftest import FIXED_NOW, FixedClock


def test_tokens_are_url_safe_and_unique() -> None:
    issuer = TokenIssuer(clock=FixedClock())

    tokens = {issuer.issue().token for _ in range(500)}

    assert len(tokens) == 500
    for token in tokens:
        assert len(token) == 43
        assert set(token) <= set(
            "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
        )


def test_token_expires_after_default_ttl() -> None:
    issued = TokenIssuer(clock=FixedClock()).issue()

    assert issued.expires_at == FIXED_NOW + timedelta(minutes=15)


def test_token_ttl_can_be_overridden() -> None:
    issuer = TokenIssuer(ttl=timedelta(minutes=5), clock=FixedClock())

    assert issuer.issue().expires_at == FIXED_NOW + timedelta(minutes=5)
    assert issuer.issue(timedelta(seconds=30)).expires_at == FIXED_NOW + timedelta(
        seconds=30
    )


def test_zero_ttl_expires_immediately() -> None:
    issuer = TokenIssuer(clock=FixedClock())

    assert issuer.issue(timedelta(0)).expires_at == FIXED_NOW

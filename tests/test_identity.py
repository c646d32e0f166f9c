from __future__ import annotations

import asyncio

import pytest
from starlette.requests import Request

from flickpick.game.errors import Unauthorized
from flickpick.services import identity
from flickpick.services.identity import (
    SESSION_COOKIE,
    PlayerIdentity,
    SignedTokenIdentityProvider,
    require_player,
)


def _request(headers: list[tuple[bytes, bytes]]) -> Request:
    return Request(scope={"type": "http", "headers": headers, "app": None})


def test_issued_token_resolves_to_player() -> None:
    provider = SignedTokenIdentityProvider("secret", max_age=60)

    token = provider.issue("player-42")

    assert provider.resolve(token) == PlayerIdentity(player_id="player-42")


def test_tampered_or_foreign_tokens_are_rejected() -> None:
    provider = SignedTokenIdentityProvider("secret", max_age=60)
    other = SignedTokenIdentityProvider("another-secret", max_age=60)

    token = provider.issue("player-42")

    assert provider.resolve(token + "x") is None
    assert other.resolve(token) is None
    assert provider.resolve("not-a-token") is None


def test_expired_token_is_rejected() -> None:
    issuer = SignedTokenIdentityProvider("secret", max_age=60)
    strict = SignedTokenIdentityProvider("secret", max_age=-1)

    assert strict.resolve(issuer.issue("player-42")) is None


def test_issue_requires_player_id() -> None:
    with pytest.raises(ValueError):
        SignedTokenIdentityProvider("secret", max_age=60).issue("")


def test_require_player_reads_bearer_header_and_cookie() -> None:
    provider = SignedTokenIdentityProvider("secret", max_age=60)
    identity.set_identity_provider(provider)
    token = provider.issue("player-7")

    async def _scenario() -> None:
        from_header = await require_player(
            _request([(b"authorization", f"Bearer {token}".encode())])
        )
        from_cookie = await require_player(
            _request([(b"cookie", f"{SESSION_COOKIE}={token}".encode())])
        )
        assert from_header.player_id == "player-7"
        assert from_cookie.player_id == "player-7"

        with pytest.raises(Unauthorized):
            await require_player(_request([]))
        with pytest.raises(Unauthorized):
            await require_player(_request([(b"authorization", b"Bearer garbage")]))

    asyncio.run(_scenario())


def test_default_provider_uses_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(identity.settings, "session_secret", "configured-secret")
    monkeypatch.setattr(identity.settings, "session_max_age_seconds", 120)

    provider = identity.get_identity_provider()

    assert isinstance(provider, SignedTokenIdentityProvider)
    assert provider.max_age == 120
    assert identity.get_identity_provider() is provider
    token = SignedTokenIdentityProvider("configured-secret", max_age=120).issue("p")
    assert provider.resolve(token) == PlayerIdentity(player_id="p")


def test_identity_provider_must_issue_and_resolve() -> None:
    class ResolveOnly(identity.IdentityProvider):
        def resolve(self, token):
            return None

    with pytest.raises(TypeError):
        ResolveOnly()

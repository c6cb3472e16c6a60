from __future__ import annotations

from datetime import timedelta
from typing import Protocol

from football_network.services._shared.dto import Principal, TokenValidationResult


class TokenCodec(Protocol):
    """Port for signing and validating bearer access tokens."""

    def encode(self, principal: Principal, *, expires_delta: timedelta) -> str:
        """
        Sign a token carrying ``principal``'s claims.

        :param principal: Identity to embed.
        :param expires_delta: Lifetime from now (may be negative in tests).
        :returns: Compact encoded token.
        """
        ...

    def decode(self, token: str) -> TokenValidationResult:
        """
        Validate signature, issuer, audience and expiry.

        Never raises: every failure is reported as a typed result.
        """
        ...

# infra/jwt/flask_jwt_token_codec.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import (
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidSubjectError,
    PyJWTError,
)

from football_network.services._shared.dto import Principal, TokenFailure, TokenValidationResult
from football_network.services._shared.ports import TokenCodec

log = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


@dataclass(slots=True)
class FlaskJWTTokenCodec(TokenCodec):
    """
    Adapter for Flask-JWT-Extended (HS256 over ``JWT_SECRET_KEY``).

    Issuer, audience and leeway come from ``JWT_ENCODE_*`` / ``JWT_DECODE_*``
    settings; ``jti``, ``iat``, ``nbf`` and ``exp`` are added by the library.

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    def encode(self, principal: Principal, *, expires_delta: timedelta) -> str:
        from flask_jwt_extended import create_access_token

        role = principal.role
        claims: dict[str, Any] = {
            "email": principal.email,
            "username": principal.username,
            "roles": list(principal.roles),
            "role": role.value if role is not None else None,
        }
        return cast(
            str,
            create_access_token(
                identity=str(principal.user_id),
                additional_claims=claims,
                expires_delta=expires_delta,
            ),
        )

    def decode(self, token: str) -> TokenValidationResult:
        from flask_jwt_extended import decode_token

        try:
            claims = cast(dict[str, Any], decode_token(token))
        except ExpiredSignatureError:
            return TokenValidationResult.fail(TokenFailure.EXPIRED)
        except InvalidSignatureError:
            return TokenValidationResult.fail(TokenFailure.INVALID_SIGNATURE)
        except InvalidIssuerError:
            return TokenValidationResult.fail(TokenFailure.INVALID_ISSUER)
        except InvalidAudienceError:
            return TokenValidationResult.fail(TokenFailure.INVALID_AUDIENCE)
        except InvalidSubjectError:
            return TokenValidationResult.fail(TokenFailure.INVALID_SUBJECT)
        except (PyJWTError, JWTExtendedException, ValueError) as exc:
            log.debug("token.decode.failed error=%s", type(exc).__name__)
            return TokenValidationResult.fail(TokenFailure.MALFORMED)

        if claims.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
            return TokenValidationResult.fail(TokenFailure.MALFORMED)

        user_id = self._parse_subject(claims.get("sub"))
        if user_id is None:
            return TokenValidationResult.fail(TokenFailure.INVALID_SUBJECT)

        principal = Principal(
            user_id=user_id,
            email=str(claims.get("email") or ""),
            username=str(claims.get("username") or ""),
            roles=self._role_claims(claims),
        )
        return TokenValidationResult.success(principal, claims)

    @staticmethod
    def _parse_subject(subject: Any) -> int | None:
        if isinstance(subject, str) and subject.strip().isdigit():
            return int(subject)
        return None

    @staticmethod
    def _role_claims(claims: dict[str, Any]) -> tuple[str, ...]:
        roles = claims.get("roles")
        if isinstance(roles, list | tuple):
            return tuple(str(r) for r in roles)
        single = claims.get("role")
        return (str(single),) if single else ()

"""Tiny helpers shared across test modules."""

from __future__ import annotations

from typing import Any

API = "/api/v1"

#: Passwords of the accounts created by ``seeded_users``.
SEED_PASSWORDS = {
    "admin": "admin123",
    "kasia.admin": "devPass123!",
    "tomek.mod": "strongPass123",
    "ola.fan": "kibic2024",
}


def login(client, username: str, password: str | None = None) -> dict[str, Any]:
    """Log in through the API and return the JSON body (asserting 200)."""
    resp = client.post(
        f"{API}/auth/login",
        json={"username": username, "password": password or SEED_PASSWORDS[username]},
    )
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def bearer(token: str) -> dict[str, str]:
    """Authorization header for ``token``."""
    return {"Authorization": f"Bearer {token}"}

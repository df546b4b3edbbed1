"""Bearer token checks on the progress endpoints.

Tokens are ES256 JWTs from the platform auth service; tests mint them
with the ephemeral dev key in token_service.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient

from app.services import token_service
from tests.conftest import COURSE_ID, mint_token


def _claims(**overrides) -> dict:
    now = datetime.now(UTC)
    claims = {
        "sub": "learner-1",
        "iss": token_service.ISSUER,
        "aud": token_service.AUDIENCE,
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "jti": str(uuid.uuid4()),
        "roles": ["user"],
    }
    claims.update(overrides)
    return claims


def _sign(claims: dict, key=None) -> str:
    return jwt.encode(claims, key or token_service._private_key, algorithm="ES256")


def _get(client: TestClient, token: str):
    return client.get(
        f"/v1/courses/{COURSE_ID}/progress",
        headers={"Authorization": f"Bearer {token}"},
    )


def test_missing_token_401(client: TestClient) -> None:
    resp = client.get(f"/v1/courses/{COURSE_ID}/progress")
    assert resp.status_code == 401


def test_garbage_token_401(client: TestClient) -> None:
    resp = _get(client, "total-garbage")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"
    assert resp.headers["www-authenticate"] == "Bearer"


def test_expired_token_401(client: TestClient) -> None:
    past = datetime.now(UTC) - timedelta(minutes=10)
    token = _sign(_claims(iat=past, exp=past + timedelta(minutes=1)))
    resp = _get(client, token)
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"


def test_token_signed_by_other_key_401(client: TestClient) -> None:
    other_key = ec.generate_private_key(ec.SECP256R1())
    resp = _get(client, _sign(_claims(), key=other_key))
    assert resp.status_code == 401


def test_wrong_audience_401(client: TestClient) -> None:
    resp = _get(client, _sign(_claims(aud="some-other-service")))
    assert resp.status_code == 401


def test_hs256_token_rejected(client: TestClient) -> None:
    token = jwt.encode(_claims(), "shared-secret-0123456789abcdef0123", algorithm="HS256")
    resp = _get(client, token)
    assert resp.status_code == 401


def test_token_without_jti_401(client: TestClient) -> None:
    claims = _claims()
    del claims["jti"]
    resp = _get(client, _sign(claims))
    assert resp.status_code == 401


def test_valid_token_reaches_handler(client: TestClient) -> None:
    # 404 = authenticated, but nothing recorded yet
    resp = _get(client, mint_token())
    assert resp.status_code == 404


def test_roles_claim_reaches_principal(client: TestClient) -> None:
    resp = client.get(
        f"/v1/courses/{COURSE_ID}/analytics",
        headers={"Authorization": f"Bearer {mint_token('anyone', ['admin'])}"},
    )
    assert resp.status_code == 200

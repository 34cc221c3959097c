"""Tests for session token handling."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from taller.config import settings
from taller.core.auth.backend import create_access_token, decode_token, session_from_token


pytestmark = pytest.mark.unit


class TestAccessToken:
    """Tests for access token creation and decoding."""

    def test_round_trip_carries_permissions(self):
        user_id = uuid4()

        token = create_access_token(user_id, ["ventas.ver", "inventario.ver", "ventas.ver"])
        data = decode_token(token)

        assert data is not None
        assert data.user_id == user_id
        assert data.type == "access"
        assert data.permissions == ["inventario.ver", "ventas.ver"]
        assert data.jti

    def test_expired_token(self):
        token = create_access_token(uuid4(), expires_delta=timedelta(seconds=-1))

        assert decode_token(token) is None

    def test_wrong_signature(self):
        token = jwt.encode({"sub": str(uuid4()), "exp": 9999999999}, "x" * 40, algorithm="HS256")

        assert decode_token(token) is None

    def test_garbage(self):
        assert decode_token("not-a-token") is None

    def test_non_list_perms_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "exp": 9999999999, "perms": "ventas.ver"},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        assert decode_token(token) is None


class TestSessionFromToken:
    """Tests for session_from_token."""

    def test_none_and_empty(self):
        assert session_from_token(None) is None
        assert session_from_token("") is None

    def test_valid_token(self):
        user_id = uuid4()

        session = session_from_token(create_access_token(user_id, ["ventas.ver"]))

        assert session is not None
        assert session.user_id == user_id
        assert session.permissions == ["ventas.ver"]

    def test_non_access_token_rejected(self):
        token = create_access_token(uuid4(), additional_claims={"type": "refresh"})

        assert session_from_token(token) is None

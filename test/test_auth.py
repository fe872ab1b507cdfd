"""
Tests for bearer token handling and the authorization context
"""

import uuid
from datetime import timedelta

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from datamanager.auth import (
    context_from_claims,
    create_access_token,
    decode_access_token,
    get_authorization_context,
)
from datamanager.config import settings
from datamanager.exceptions import InvalidTokenError
from datamanager.services.authorization_service import AccessibleDataSets, AuthorizationContext


class TestTokens:
    def test_round_trip_claims(self):
        token = create_access_token("alice", roles=["editor"])

        claims = decode_access_token(token)

        assert claims["sub"] == "alice"
        assert claims["roles"] == ["editor"]

    def test_expired_token(self):
        token = create_access_token("alice", expires_delta=timedelta(minutes=-1))

        with pytest.raises(InvalidTokenError) as exc_info:
            decode_access_token(token)

        assert exc_info.value.status_code == 401
        assert "expired" in exc_info.value.message

    def test_garbage_token(self):
        with pytest.raises(InvalidTokenError):
            decode_access_token("not-a-token")


class TestContextFromClaims:
    def test_regular_identity(self):
        context = context_from_claims({"sub": "alice", "roles": ["editor"]})

        assert context.identity_id == "alice"
        assert context.is_root is False
        assert context.enforce is True

    def test_root_role(self):
        assert context_from_claims({"sub": "admin", "roles": [settings.root_role]}).is_root is True

    def test_single_role_string(self):
        assert context_from_claims({"sub": "admin", "roles": settings.root_role}).is_root is True


class TestGetAuthorizationContext:
    async def test_no_credentials_is_anonymous(self):
        context = await get_authorization_context(None)

        assert context == AuthorizationContext.anonymous()
        assert context.identity_id is None

    async def test_bearer_token(self):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=create_access_token("bob"))

        context = await get_authorization_context(credentials)

        assert context.identity_id == "bob"


class TestAccessibleDataSets:
    def test_all_accessible(self):
        assert AccessibleDataSets(all_accessible=True).allows(None)

    def test_gated(self):
        allowed = uuid.uuid4()
        accessible = AccessibleDataSets(all_accessible=False, ids=frozenset({allowed}))

        assert accessible.allows(allowed)
        assert not accessible.allows(uuid.uuid4())
        assert not accessible.allows(None)

    def test_system_context_is_unchecked(self):
        context = AuthorizationContext.system()

        assert context.enforce is False
        assert context.user_name == "system"

"""
Tests for AuthService: hashing, tokens and the account flows against SQLite.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from core.errors import AuthenticationError, ConflictError, InputError
from database.models import RefreshToken, User
from schemas.auth import ProfileUpdate, UserRegister
from services.auth_service import REFRESH_TOKEN_TYPE, auth_service, sanitize_email
from conftest import TEST_PASSWORD


def registration(email="Jane@Example.com "):
    return UserRegister(email=email.strip(), password=TEST_PASSWORD, first_name="Jane", last_name="Doe")


class TestPasswordsAndTokens:
    def test_hash_and_verify(self):
        hashed = auth_service.hash_password(TEST_PASSWORD)

        assert hashed != TEST_PASSWORD
        assert auth_service.verify_password(TEST_PASSWORD, hashed)
        assert not auth_service.verify_password("Wrong1234", hashed)

    def test_access_token_round_trip(self):
        user = User(id="user-1", email="jane@example.com")
        payload = auth_service.decode_token(auth_service.create_access_token(user))

        assert payload["sub"] == "user-1"
        assert payload["type"] == "access"

    def test_expired_access_token_is_rejected(self):
        user = User(id="user-1", email="jane@example.com")
        token = auth_service.create_access_token(user, expires_delta=timedelta(seconds=-1))

        assert auth_service.decode_token(token) is None

    def test_refresh_token_is_not_an_access_token(self):
        user = User(id="user-1", email="jane@example.com")
        refresh_token, expires_at = auth_service.create_refresh_token(user)

        assert auth_service.decode_token(refresh_token) is None
        assert auth_service.decode_token(refresh_token, REFRESH_TOKEN_TYPE)["sub"] == "user-1"
        assert expires_at > datetime.utcnow() + timedelta(days=6)

    def test_refresh_tokens_are_unique(self):
        user = User(id="user-1", email="jane@example.com")
        assert auth_service.create_refresh_token(user)[0] != auth_service.create_refresh_token(user)[0]

    def test_sanitize_email(self):
        assert sanitize_email("  Jane@Example.COM ") == "jane@example.com"


class TestAccountFlows:
    @pytest.mark.asyncio
    async def test_register_stores_normalised_email(self, database):
        async with database.session() as db:
            user, tokens = await auth_service.register(db, registration("Jane@Example.com"))

            assert user.email == "jane@example.com"
            assert user.email_verified is False
            assert user.verification_token
            assert tokens.token_type == "bearer"

    @pytest.mark.asyncio
    async def test_duplicate_registration_conflicts(self, database):
        async with database.session() as db:
            await auth_service.register(db, registration("jane@example.com"))
            with pytest.raises(ConflictError):
                await auth_service.register(db, registration("JANE@example.com"))

    @pytest.mark.asyncio
    async def test_login_with_wrong_password(self, database):
        async with database.session() as db:
            await auth_service.register(db, registration())
            with pytest.raises(AuthenticationError, match="Invalid email or password"):
                await auth_service.login(db, "jane@example.com", "Wrong1234")

    @pytest.mark.asyncio
    async def test_refresh_rotates_the_token(self, database):
        async with database.session() as db:
            _, tokens = await auth_service.register(db, registration())

            _, new_tokens = await auth_service.refresh(db, tokens.refresh_token)

            assert new_tokens.refresh_token != tokens.refresh_token
            with pytest.raises(AuthenticationError):
                await auth_service.refresh(db, tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_logout_revokes_refresh_token(self, database):
        async with database.session() as db:
            user, tokens = await auth_service.register(db, registration())
            await auth_service.logout(db, user, tokens.refresh_token)

            with pytest.raises(AuthenticationError):
                await auth_service.refresh(db, tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_verify_email(self, database):
        async with database.session() as db:
            user, _ = await auth_service.register(db, registration())
            token = user.verification_token

            await auth_service.verify_email(db, token)

            assert user.email_verified is True
            with pytest.raises(InputError):
                await auth_service.verify_email(db, token)

    @pytest.mark.asyncio
    async def test_password_reset_flow(self, database):
        async with database.session() as db:
            user, tokens = await auth_service.register(db, registration())

            assert await auth_service.request_password_reset(db, "nobody@example.com") is None
            reset_token = await auth_service.request_password_reset(db, "jane@example.com")

            await auth_service.reset_password(db, reset_token, "Moonlight77")

            assert auth_service.verify_password("Moonlight77", user.password_hash)
            assert user.reset_token is None
            # Existing sessions are revoked
            with pytest.raises(AuthenticationError):
                await auth_service.refresh(db, tokens.refresh_token)
            with pytest.raises(InputError):
                await auth_service.reset_password(db, reset_token, "Another88")

    @pytest.mark.asyncio
    async def test_expired_reset_token(self, database):
        async with database.session() as db:
            user, _ = await auth_service.register(db, registration())
            reset_token = await auth_service.request_password_reset(db, user.email)
            user.reset_token_expiry = datetime.utcnow() - timedelta(minutes=1)
            await db.commit()

            with pytest.raises(InputError, match="Invalid or expired reset token"):
                await auth_service.reset_password(db, reset_token, "Moonlight77")

    @pytest.mark.asyncio
    async def test_change_password_must_differ(self, database):
        async with database.session() as db:
            user, _ = await auth_service.register(db, registration())

            with pytest.raises(InputError, match="must be different"):
                await auth_service.change_password(db, user, TEST_PASSWORD, TEST_PASSWORD)
            with pytest.raises(InputError, match="Current password is incorrect"):
                await auth_service.change_password(db, user, "Wrong1234", "Moonlight77")

            await auth_service.change_password(db, user, TEST_PASSWORD, "Moonlight77")
            assert auth_service.verify_password("Moonlight77", user.password_hash)

    @pytest.mark.asyncio
    async def test_update_profile_requires_a_field(self, database):
        async with database.session() as db:
            user, _ = await auth_service.register(db, registration())

            with pytest.raises(InputError, match="No fields to update"):
                await auth_service.update_profile(db, user, ProfileUpdate())

            updated = await auth_service.update_profile(db, user, ProfileUpdate(first_name="Janet"))
            assert updated.first_name == "Janet"

    @pytest.mark.asyncio
    async def test_update_profile_email_conflict(self, database):
        async with database.session() as db:
            await auth_service.register(db, registration("taken@example.com"))
            user, _ = await auth_service.register(db, registration("jane@example.com"))

            with pytest.raises(ConflictError):
                await auth_service.update_profile(db, user, ProfileUpdate(email="Taken@example.com"))

    @pytest.mark.asyncio
    async def test_delete_account(self, database):
        async with database.session() as db:
            user, _ = await auth_service.register(db, registration())
            user_id = user.id

            await auth_service.delete_account(db, user)

            assert await auth_service.get_user_by_id(db, user_id) is None
            remaining = await db.scalar(select(RefreshToken).where(RefreshToken.user_id == user_id))
            assert remaining is None

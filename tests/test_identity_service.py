"""Unit tests for the identity store (accounts, session, first launch)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import AsyncMock, patch
from datetime import datetime
from platecheck.database import create_tables, make_engine, make_session_factory
from platecheck.exceptions import ErrorCode, StorageError
from platecheck.schemas.account import Role
from platecheck.services import identity_service
from platecheck.services.identity_service import IdentityStore
from platecheck.storage.kv_store import KeyValueStore

FIXED_NOW = datetime(2026, 3, 15, 9, 30, 0)


def make_store():
    engine = make_engine("sqlite://")
    create_tables(engine)
    return KeyValueStore(make_session_factory(engine))


def make_identity(store=None):
    return IdentityStore(store or make_store(), clock=lambda: FIXED_NOW)


class TestBootstrap:
    @pytest.mark.asyncio
    async def test_seeds_admin_and_user(self):
        store = make_store()
        result = await make_identity(store).bootstrap_demo_accounts()

        assert result.success and result.data is True
        users = await store.get_json("users")
        assert [(u["email"], u["role"]) for u in users] == [
            ("admin@example.com", "admin"),
            ("user@example.com", "user"),
        ]
        assert [u["id"] for u in users] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_only_seeds_once(self):
        store = make_store()
        identity = make_identity(store)
        await identity.bootstrap_demo_accounts()
        second = await identity.bootstrap_demo_accounts()

        assert second.success and second.data is False
        assert len(await store.get_json("users")) == 2

    @pytest.mark.asyncio
    async def test_empty_but_set_collection_is_not_reseeded(self):
        store = make_store()
        await store.set_json("users", [])
        result = await make_identity(store).bootstrap_demo_accounts()

        assert result.data is False
        assert await store.get_json("users") == []

    @pytest.mark.asyncio
    async def test_demo_credentials_are_hashed(self):
        store = make_store()
        await make_identity(store).bootstrap_demo_accounts()
        for record in await store.get_json("users"):
            assert "password" not in record
            assert record["passwordHash"].startswith("$pbkdf2-sha256$")

    @pytest.mark.asyncio
    async def test_demo_logins_work(self):
        identity = make_identity()
        await identity.bootstrap_demo_accounts()

        admin = await identity.log_in("admin@example.com", "admin123")
        assert admin.success and admin.data.role == Role.ADMIN
        assert identity.is_admin

        user = await identity.log_in("user@example.com", "password123")
        assert user.success and user.data.role == Role.USER
        assert not identity.is_admin

    @pytest.mark.asyncio
    async def test_hashes_outside_the_lock(self):
        identity = make_identity()
        real_hash = identity_service.hash_password

        def checked_hash(password):
            assert not identity._lock.locked()
            return real_hash(password)

        with patch.object(identity_service, "hash_password", side_effect=checked_hash) as hasher:
            result = await identity.bootstrap_demo_accounts()

        assert result.data is True
        assert hasher.call_count == 2


class TestFirstLaunch:
    @pytest.mark.asyncio
    async def test_first_launch_seeds_accounts(self):
        store = make_store()
        identity = make_identity(store)

        assert await identity.check_first_launch() is True
        assert identity.is_first_launch is True
        assert len(await store.get_json("users")) == 2

    @pytest.mark.asyncio
    async def test_mark_complete_persists(self):
        store = make_store()
        identity = make_identity(store)
        await identity.check_first_launch()

        result = await identity.mark_first_launch_complete()
        assert result.success
        assert await store.get_item("alreadyLaunched") == "true"
        assert await make_identity(store).check_first_launch() is False

    @pytest.mark.asyncio
    async def test_flag_is_independent_of_accounts(self):
        store = make_store()
        await store.set_item("alreadyLaunched", "true")

        assert await make_identity(store).check_first_launch() is False
        assert await store.get_item("users") is None

    @pytest.mark.asyncio
    async def test_storage_error_reports_not_first_launch(self):
        store = make_store()
        identity = make_identity(store)
        with patch.object(store, "get_item", new_callable=AsyncMock, side_effect=StorageError("boom")):
            assert await identity.check_first_launch() is False


class TestSignUp:
    @pytest.mark.asyncio
    async def test_creates_user_and_session(self):
        store = make_store()
        identity = make_identity(store)
        result = await identity.sign_up("a@b.com", "secret1", "A B")

        assert result.success
        account = result.data
        assert account.email == "a@b.com"
        assert account.full_name == "A B"
        assert account.role == Role.USER
        assert account.created_at == FIXED_NOW
        assert identity.current_user == account

        session = await store.get_json("currentUser")
        assert session["id"] == account.id
        assert "passwordHash" not in session and "password" not in session

    @pytest.mark.asyncio
    async def test_password_is_not_stored_in_plaintext(self):
        store = make_store()
        await make_identity(store).sign_up("a@b.com", "secret1", "A B")
        raw = await store.get_item("users")
        assert "secret1" not in raw

    @pytest.mark.asyncio
    async def test_distinct_emails_get_distinct_accounts(self):
        store = make_store()
        identity = make_identity(store)
        first = await identity.sign_up("one@example.com", "secret1", "One")
        second = await identity.sign_up("two@example.com", "secret2", "Two")

        assert first.data.id != second.data.id
        assert len(await store.get_json("users")) == 2
        assert (await identity.log_in("one@example.com", "secret1")).success

    @pytest.mark.asyncio
    async def test_duplicate_email_differing_by_case(self):
        identity = make_identity()
        await identity.sign_up("Driver@Example.com", "secret1", "Driver")
        result = await identity.sign_up("driver@example.COM", "other12", "Someone")

        assert not result.success
        assert result.code == ErrorCode.DUPLICATE_EMAIL
        assert result.error == "Email already in use"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password,name", [
        ("", "secret1", "A B"),
        ("a@b.com", "secret1", "   "),
        ("not-an-email", "secret1", "A B"),
        ("a@b.com", "12345", "A B"),
    ])
    async def test_invalid_input_rejected(self, email, password, name):
        store = make_store()
        result = await make_identity(store).sign_up(email, password, name)

        assert result.code == ErrorCode.INVALID_INPUT
        assert await store.get_item("users") is None

    @pytest.mark.asyncio
    async def test_failed_session_write_keeps_accounts_unchanged(self):
        store = make_store()
        identity = make_identity(store)
        real_set_item = store.set_item

        async def fail_on_session(key, value):
            if key == "currentUser":
                raise StorageError("disk full", key=key)
            await real_set_item(key, value)

        with patch.object(store, "set_item", new_callable=AsyncMock, side_effect=fail_on_session):
            result = await identity.sign_up("a@b.com", "secret1", "A B")

        assert result.code == ErrorCode.STORAGE_FAILURE
        assert await store.get_item("users") is None
        assert await store.get_item("currentUser") is None
        assert identity.current_user is None

        retry = await identity.sign_up("a@b.com", "secret1", "A B")
        assert retry.success

    @pytest.mark.asyncio
    async def test_failed_session_write_restores_previous_accounts(self):
        store = make_store()
        identity = make_identity(store)
        await identity.bootstrap_demo_accounts()
        before = await store.get_item("users")
        real_set_item = store.set_item

        async def fail_on_session(key, value):
            if key == "currentUser":
                raise StorageError("disk full", key=key)
            await real_set_item(key, value)

        with patch.object(store, "set_item", new_callable=AsyncMock, side_effect=fail_on_session):
            result = await identity.sign_up("a@b.com", "secret1", "A B")

        assert result.code == ErrorCode.STORAGE_FAILURE
        assert await store.get_item("users") == before

    @pytest.mark.asyncio
    async def test_hashes_outside_the_lock(self):
        identity = make_identity()
        real_hash = identity_service.hash_password

        def checked_hash(password):
            assert not identity._lock.locked()
            return real_hash(password)

        with patch.object(identity_service, "hash_password", side_effect=checked_hash) as hasher:
            result = await identity.sign_up("a@b.com", "secret1", "A B")

        assert result.success
        hasher.assert_called_once_with("secret1")


class TestLogIn:
    @pytest.mark.asyncio
    async def test_email_match_is_case_insensitive(self):
        identity = make_identity()
        await identity.sign_up("a@b.com", "secret1", "A B")
        await identity.log_out()

        result = await identity.log_in("A@B.COM", "secret1")
        assert result.success
        assert identity.current_user.email == "a@b.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password", [
        ("a@b.com", "Secret1"),
        ("a@b.com", "wrong"),
        ("nobody@b.com", "secret1"),
        ("", ""),
    ])
    async def test_bad_credentials(self, email, password):
        identity = make_identity()
        await identity.sign_up("a@b.com", "secret1", "A B")
        await identity.log_out()

        result = await identity.log_in(email, password)
        assert not result.success
        assert result.code == ErrorCode.INVALID_CREDENTIALS
        assert identity.current_user is None

    @pytest.mark.asyncio
    async def test_legacy_plaintext_record_is_upgraded(self):
        store = make_store()
        await store.set_json("users", [{
            "id": "9", "email": "legacy@example.com", "password": "oldpass1",
            "fullName": "Legacy", "role": "user", "createdAt": "2025-01-01T00:00:00",
        }])
        identity = make_identity(store)

        result = await identity.log_in("legacy@example.com", "oldpass1")
        assert result.success and result.data.id == "9"

        stored = (await store.get_json("users"))[0]
        assert "password" not in stored
        assert stored["passwordHash"].startswith("$pbkdf2-sha256$")
        assert (await identity.log_in("legacy@example.com", "oldpass1")).success

    @pytest.mark.asyncio
    async def test_failed_session_write_keeps_legacy_record(self):
        store = make_store()
        await store.set_json("users", [{
            "id": "9", "email": "legacy@example.com", "password": "oldpass1",
            "fullName": "Legacy", "role": "user", "createdAt": "2025-01-01T00:00:00",
        }])
        before = await store.get_item("users")
        identity = make_identity(store)
        real_set_item = store.set_item

        async def fail_on_session(key, value):
            if key == "currentUser":
                raise StorageError("disk full", key=key)
            await real_set_item(key, value)

        with patch.object(store, "set_item", new_callable=AsyncMock, side_effect=fail_on_session):
            result = await identity.log_in("legacy@example.com", "oldpass1")

        assert result.code == ErrorCode.STORAGE_FAILURE
        assert await store.get_item("users") == before
        assert identity.current_user is None

    @pytest.mark.asyncio
    async def test_storage_failure_is_reported(self):
        store = make_store()
        identity = make_identity(store)
        with patch.object(store, "get_item", new_callable=AsyncMock, side_effect=StorageError("boom")):
            result = await identity.log_in("a@b.com", "secret1")
        assert result.code == ErrorCode.STORAGE_FAILURE


class TestSession:
    @pytest.mark.asyncio
    async def test_log_out_clears_session(self):
        store = make_store()
        identity = make_identity(store)
        await identity.sign_up("a@b.com", "secret1", "A B")

        await identity.log_out()
        assert identity.current_user is None
        assert await store.get_item("currentUser") is None

    @pytest.mark.asyncio
    async def test_log_out_survives_storage_failure(self):
        store = make_store()
        identity = make_identity(store)
        await identity.sign_up("a@b.com", "secret1", "A B")

        with patch.object(store, "remove_item", new_callable=AsyncMock, side_effect=StorageError("boom")):
            await identity.log_out()
        assert identity.current_user is None

    @pytest.mark.asyncio
    async def test_restore_after_restart(self):
        store = make_store()
        created = (await make_identity(store).sign_up("a@b.com", "secret1", "A B")).data

        restored = await make_identity(store).restore_session()
        assert restored == created

    @pytest.mark.asyncio
    async def test_restore_without_session(self):
        assert await make_identity().restore_session() is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["{broken", '{"id": "1"}', "[]"])
    async def test_corrupt_session_is_ignored(self, raw):
        store = make_store()
        await store.set_item("currentUser", raw)
        identity = make_identity(store)

        assert await identity.restore_session() is None
        assert identity.current_user is None

# platecheck/services/identity_service.py
"""
Identity store: accounts, the current session, and the first-launch flag.

Accounts live under the `users` key (with hashed credentials), the session
under `currentUser` (credential stripped) and the first-launch marker under
`alreadyLaunched`. Every mutation is a read-modify-write of one key, done
under the store's lock and persisted before the call returns.
"""

import asyncio
import re
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from platecheck.config import settings
from platecheck.exceptions import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidInputError,
    PlateCheckError,
    StorageError,
)
from platecheck.schemas.account import Account, Role, StoredAccount
from platecheck.schemas.result import OperationResult
from platecheck.services.password_service import hash_password, verify_password
from platecheck.storage.kv_store import (
    ALREADY_LAUNCHED_KEY,
    CURRENT_USER_KEY,
    USERS_KEY,
    KeyValueStore,
)
from platecheck.utils.ids import new_record_id
from platecheck.utils.json_parser import safe_parse_json
from platecheck.utils.logger import get_logger

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")

DEMO_ACCOUNTS = [
    {"id": "1", "email": "admin@example.com", "password": "admin123",
     "full_name": "Admin User", "role": Role.ADMIN},
    {"id": "2", "email": "user@example.com", "password": "password123",
     "full_name": "Demo User", "role": Role.USER},
]


class IdentityStore:
    def __init__(self, store: KeyValueStore, clock=datetime.utcnow):
        self._store = store
        self._clock = clock
        self._lock = asyncio.Lock()
        self._current_user: Optional[Account] = None
        self.is_first_launch: Optional[bool] = None

    @property
    def current_user(self) -> Optional[Account]:
        return self._current_user

    @property
    def is_admin(self) -> bool:
        return self._current_user is not None and self._current_user.is_admin

    # ── Persistence helpers ────────────────────────────────────────────────
    async def _load_accounts(self) -> list[StoredAccount]:
        records = await self._store.get_json(USERS_KEY) or []
        try:
            return [StoredAccount.model_validate(r) for r in records]
        except (ValidationError, TypeError) as e:
            raise StorageError("Stored accounts are corrupt", key=USERS_KEY) from e

    async def _save_accounts(self, accounts: list[StoredAccount]):
        await self._store.set_json(
            USERS_KEY,
            [a.model_dump(by_alias=True, mode="json", exclude_none=True) for a in accounts],
        )

    async def _start_session(self, account: Account):
        await self._store.set_json(CURRENT_USER_KEY, account.model_dump(by_alias=True, mode="json"))
        self._current_user = account

    async def _save_accounts_and_start_session(self, accounts: list[StoredAccount],
                                               account: Account, previous: Optional[str]):
        """Write `users` then `currentUser`; if the session write fails, put `previous` back."""
        await self._save_accounts(accounts)
        try:
            await self._start_session(account)
        except StorageError:
            try:
                if previous is None:
                    await self._store.remove_item(USERS_KEY)
                else:
                    await self._store.set_item(USERS_KEY, previous)
            except StorageError as e:
                logger.error(f"Could not restore accounts after failed session write: {e.message}")
            raise

    @staticmethod
    def _credentials_match(account: StoredAccount, password: str) -> bool:
        if account.password_hash:
            try:
                return verify_password(password, account.password_hash)
            except ValueError as e:
                raise StorageError(f"Stored credential for {account.email} is unreadable",
                                   key=USERS_KEY) from e
        return account.password is not None and account.password == password

    # ── First launch ───────────────────────────────────────────────────────
    async def bootstrap_demo_accounts(self) -> OperationResult[bool]:
        """Seed the admin and demo user, but only if the `users` key has never been written."""
        try:
            if await self._store.get_item(USERS_KEY) is not None:
                return OperationResult[bool].ok(False)
            now = self._clock()
            accounts = [
                StoredAccount(
                    id=demo["id"],
                    email=demo["email"],
                    password_hash=hash_password(demo["password"]),
                    full_name=demo["full_name"],
                    role=demo["role"],
                    created_at=now,
                )
                for demo in DEMO_ACCOUNTS
            ]
            async with self._lock:
                # Re-check under the lock, the key may have been written while hashing
                if await self._store.get_item(USERS_KEY) is not None:
                    return OperationResult[bool].ok(False)
                await self._save_accounts(accounts)
        except PlateCheckError as e:
            logger.error(f"Demo account bootstrap failed: {e.message}")
            return OperationResult[bool].fail(e)
        logger.info(f"Seeded {len(DEMO_ACCOUNTS)} demo accounts")
        return OperationResult[bool].ok(True)

    async def check_first_launch(self) -> bool:
        """True when `alreadyLaunched` is unset. Demo accounts are seeded on first launch."""
        try:
            value = await self._store.get_item(ALREADY_LAUNCHED_KEY)
        except StorageError as e:
            logger.error(f"Error checking first launch: {e.message}")
            self.is_first_launch = False
            return False

        self.is_first_launch = value is None
        if self.is_first_launch:
            await self.bootstrap_demo_accounts()
        return self.is_first_launch

    async def mark_first_launch_complete(self) -> OperationResult[bool]:
        try:
            await self._store.set_item(ALREADY_LAUNCHED_KEY, "true")
        except StorageError as e:
            return OperationResult[bool].fail(e)
        self.is_first_launch = False
        return OperationResult[bool].ok(True)

    # ── Accounts & session ─────────────────────────────────────────────────
    @staticmethod
    def _validate_sign_up(email: str, password: str, full_name: str):
        if not email or not password or not full_name or not full_name.strip():
            raise InvalidInputError("Please fill in all fields")
        if not EMAIL_PATTERN.match(email):
            raise InvalidInputError("Please enter a valid email address")
        if len(password) < settings.PASSWORD_MIN_LENGTH:
            raise InvalidInputError(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
            )

    async def sign_up(self, email: str, password: str, full_name: str) -> OperationResult[Account]:
        email = (email or "").strip()
        try:
            self._validate_sign_up(email, password, full_name)
            password_hash = hash_password(password)
            async with self._lock:
                previous = await self._store.get_item(USERS_KEY)
                accounts = await self._load_accounts()
                if any(a.email.lower() == email.lower() for a in accounts):
                    raise DuplicateEmailError()

                stored = StoredAccount(
                    id=new_record_id(),
                    email=email,
                    password_hash=password_hash,
                    full_name=full_name.strip(),
                    role=Role.USER,
                    created_at=self._clock(),
                )
                accounts.append(stored)
                account = stored.to_public()
                await self._save_accounts_and_start_session(accounts, account, previous)
        except PlateCheckError as e:
            logger.warning(f"Sign-up rejected for {email}: {e.message}")
            return OperationResult[Account].fail(e)

        logger.info(f"New account {account.id} ({account.email})")
        return OperationResult[Account].ok(account)

    async def log_in(self, email: str, password: str) -> OperationResult[Account]:
        email = (email or "").strip()
        try:
            async with self._lock:
                accounts = await self._load_accounts()
                match = next(
                    (a for a in accounts
                     if a.email.lower() == email.lower() and self._credentials_match(a, password)),
                    None,
                )
                if match is None:
                    raise InvalidCredentialsError()

                account = match.to_public()
                if not match.password_hash:
                    previous = await self._store.get_item(USERS_KEY)
                    match.password_hash = hash_password(password)
                    match.password = None
                    await self._save_accounts_and_start_session(accounts, account, previous)
                    logger.info(f"Upgraded plaintext credential for account {match.id}")
                else:
                    await self._start_session(account)
        except PlateCheckError as e:
            logger.warning(f"Login failed for {email}: {e.message}")
            return OperationResult[Account].fail(e)

        logger.info(f"Logged in {account.email} ({account.role.value})")
        return OperationResult[Account].ok(account)

    async def log_out(self):
        self._current_user = None
        try:
            await self._store.remove_item(CURRENT_USER_KEY)
        except StorageError as e:
            logger.error(f"Logout could not clear the stored session: {e.message}")

    async def restore_session(self) -> Optional[Account]:
        """Reload the persisted session. Absent or corrupt data means no session."""
        try:
            raw = await self._store.get_item(CURRENT_USER_KEY)
        except StorageError as e:
            logger.warning(f"Could not read stored session: {e.message}")
            return self._current_user

        data = safe_parse_json(raw)
        if data is None:
            if raw is not None:
                logger.warning("Stored session is corrupt, ignoring it")
            return self._current_user

        try:
            self._current_user = Account.model_validate(data)
        except ValidationError:
            logger.warning("Stored session has an unexpected shape, ignoring it")
        return self._current_user

# platecheck/schemas/account.py
from enum import Enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Account(BaseModel):
    """Public view of an account, as held by the session. Never carries a credential."""

    id: str
    email: str
    full_name: str
    role: Role = Role.USER
    created_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class StoredAccount(Account):
    """Account record as persisted under the `users` key."""

    password_hash: Optional[str] = None
    password: Optional[str] = None   # legacy plaintext credential, upgraded on login

    def to_public(self) -> Account:
        return Account(**self.model_dump(exclude={"password_hash", "password"}))

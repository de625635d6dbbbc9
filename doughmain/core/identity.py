# doughmain/core/identity.py
"""
Identity provider backed by users_table.

Holds the user records, their custom claims (the `admin` flag among them),
enable/disable state and password hashes, and issues/verifies the signed id
tokens that callers present as `Authorization: Bearer <token>`. Custom
claims are copied into the token at issue time, so a claim change is only
visible to a caller after they sign in again.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import bcrypt
import jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from doughmain.core import models
from doughmain.core.config import Settings
from doughmain.core.errors import (
    AlreadyExistsError,
    AuthenticationError,
    NotFoundError,
    UserDisabledError,
)

logger = logging.getLogger(__name__)

MAX_LIST_USERS = 1000

# Token fields that custom claims are never allowed to overwrite
RESERVED_CLAIMS = frozenset({"sub", "uid", "email", "iat", "exp", "iss", "aud", "nbf"})


@dataclass
class UserRecord:
    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    disabled: bool = False
    custom_claims: Dict[str, Any] = field(default_factory=dict)
    creation_time: Optional[datetime] = None
    last_sign_in_time: Optional[datetime] = None

    @classmethod
    def from_model(cls, user: models.User) -> "UserRecord":
        return cls(
            uid=user.uid,
            email=user.email,
            display_name=user.display_name,
            photo_url=user.photo_url,
            disabled=bool(user.disabled),
            custom_claims=dict(user.custom_claims or {}),
            creation_time=user.created_at,
            last_sign_in_time=user.last_sign_in_at,
        )

    @property
    def is_admin(self) -> bool:
        return self.custom_claims.get("admin") is True


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


class IdentityProvider:
    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession], settings: Settings
    ):
        self._session_factory = session_factory
        self._settings = settings

    async def _load(self, session: AsyncSession, uid: str) -> models.User:
        user = await session.get(models.User, uid)
        if user is None:
            raise NotFoundError(f"No user record found for uid: {uid}")
        return user

    async def create_user(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
        uid: Optional[str] = None,
    ) -> UserRecord:
        user = models.User(
            uid=uid or uuid.uuid4().hex[:28],
            email=email.strip().lower(),
            password=hash_password(password),
            display_name=display_name,
            disabled=False,
            custom_claims={},
            created_at=datetime.now(timezone.utc),
        )
        async with self._session_factory() as session:
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise AlreadyExistsError(f"User already exists: {email}")
            await session.refresh(user)
            logger.info("Created user %s", user.uid)
            return UserRecord.from_model(user)

    async def get_user(self, uid: str) -> UserRecord:
        async with self._session_factory() as session:
            return UserRecord.from_model(await self._load(session, uid))

    async def get_user_by_email(self, email: str) -> UserRecord:
        query = select(models.User).where(models.User.email == email.strip().lower())
        async with self._session_factory() as session:
            result = await session.execute(query)
            user = result.scalars().first()
            if user is None:
                raise NotFoundError(f"No user record found for email: {email}")
            return UserRecord.from_model(user)

    async def set_custom_user_claims(
        self, uid: str, claims: Optional[Dict[str, Any]]
    ) -> None:
        claims = dict(claims or {})
        bad = RESERVED_CLAIMS.intersection(claims)
        if bad:
            raise ValueError(f"Reserved claims cannot be set: {sorted(bad)}")
        async with self._session_factory() as session:
            user = await self._load(session, uid)
            user.custom_claims = claims
            await session.commit()

    async def update_user(
        self,
        uid: str,
        disabled: Optional[bool] = None,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> UserRecord:
        async with self._session_factory() as session:
            user = await self._load(session, uid)
            if disabled is not None:
                user.disabled = bool(disabled)
            if display_name is not None:
                user.display_name = display_name
            if photo_url is not None:
                user.photo_url = photo_url
            await session.commit()
            await session.refresh(user)
            return UserRecord.from_model(user)

    async def list_users(self, max_results: int = MAX_LIST_USERS) -> List[UserRecord]:
        # one page only, capped like the hosted provider's listUsers
        limit = max(1, min(max_results, MAX_LIST_USERS))
        query = select(models.User).order_by(models.User.uid).limit(limit)
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [UserRecord.from_model(u) for u in result.scalars().all()]

    async def authenticate(self, email: str, password: str) -> UserRecord:
        query = select(models.User).where(models.User.email == email.strip().lower())
        async with self._session_factory() as session:
            result = await session.execute(query)
            user = result.scalars().first()
            if user is None:
                raise NotFoundError("User does not exist")
            if not verify_password(password, user.password):
                raise AuthenticationError("Incorrect password")
            if user.disabled:
                raise UserDisabledError("User account is disabled")
            user.last_sign_in_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(user)
            return UserRecord.from_model(user)

    def create_id_token(self, user: UserRecord) -> str:
        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            k: v for k, v in user.custom_claims.items() if k not in RESERVED_CLAIMS
        }
        payload.update(
            {
                "sub": user.uid,
                "uid": user.uid,
                "email": user.email,
                "iat": now,
                "exp": now
                + timedelta(minutes=self._settings.access_token_expire_minutes),
            }
        )
        return jwt.encode(
            payload,
            self._settings.require_jwt_secret(),
            algorithm=self._settings.jwt_algorithm,
        )

    async def verify_id_token(self, token: str) -> Dict[str, Any]:
        try:
            claims = jwt.decode(
                token,
                self._settings.require_jwt_secret(),
                algorithms=[self._settings.jwt_algorithm],
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Id token has expired")
        except jwt.PyJWTError as error:
            raise AuthenticationError(f"Invalid id token: {error}")

        uid = claims.get("uid") or claims.get("sub")
        if not uid:
            raise AuthenticationError("Id token has no subject")
        try:
            user = await self.get_user(uid)
        except NotFoundError:
            raise AuthenticationError("Id token refers to an unknown user")
        if user.disabled:
            raise UserDisabledError("User account is disabled")
        claims["uid"] = uid
        return claims

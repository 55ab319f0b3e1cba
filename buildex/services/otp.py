"""
OTP-verified registration.
A 6-digit code is emailed to the applicant and held with the pending
registration in an expiring key-value store until it is confirmed.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from buildex.models.user import User, UserRole
from buildex.repositories.user import UserRepository
from buildex.services.notification import NotificationDispatcher
from buildex.utils.clock import Clock, utc_now
from buildex.utils.result import Ok, Err, ErrorKind, Result
from typing import Any, Dict, Optional, Protocol, Tuple
from datetime import datetime, timedelta
import json
import logging
import secrets

from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Fields accepted from a registration request
_REGISTRATION_FIELDS = ("username", "full_name", "phone", "role")


class OtpStore(Protocol):
    """Expiring key-value store for pending registrations."""

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def get(self, key: str) -> Optional[str]:
        ...

    async def delete(self, key: str) -> None:
        ...


class MemoryOtpStore:
    """In-process store; entries expire according to the injected clock."""

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, datetime]] = {}

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self._clock() + timedelta(seconds=ttl_seconds))

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)


class RedisOtpStore:
    """Redis backed store using SETEX so entries expire server side."""

    def __init__(self, url: str, client: Optional[Redis] = None):
        self.redis = client or Redis.from_url(url, decode_responses=True)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.redis.setex(key, ttl_seconds, value)

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(key)

    async def delete(self, key: str) -> None:
        await self.redis.delete(key)

    async def close(self) -> None:
        await self.redis.aclose()


def generate_otp() -> str:
    """Random 6-digit code."""
    return str(secrets.randbelow(900000) + 100000)


class OtpService:
    """
    Two-step registration: request a code, then verify it to create the account.
    """

    def __init__(
        self,
        db: AsyncSession,
        store: OtpStore,
        dispatcher: NotificationDispatcher,
        ttl_seconds: int = 600
    ):
        self.db = db
        self.store = store
        self.dispatcher = dispatcher
        self.ttl_seconds = ttl_seconds
        self.user_repo = UserRepository(db)

    @staticmethod
    def _key(email: str) -> str:
        return f"otp:{email}"

    async def request_registration(self, data: Dict[str, Any]) -> Result[Dict[str, Any]]:
        """
        Validate a registration request and email a verification code.

        Args:
            data: email, password and optional username, full_name, phone, role

        Returns:
            Ok with the normalized email and the code lifetime, or Err
        """
        raw_email = (data.get("email") or "").strip()
        if not raw_email:
            return Err(ErrorKind.VALIDATION, "Email is required")

        try:
            email = User.validate_email_format(raw_email)
            hashed_password = User.hash_password(data.get("password") or "")
        except ValueError as e:
            return Err(ErrorKind.VALIDATION, str(e))

        role = data.get("role") or UserRole.USER
        try:
            role = UserRole(role)
        except ValueError:
            return Err(ErrorKind.VALIDATION, f"Unknown role: {role}")
        if role == UserRole.ADMIN:
            return Err(ErrorKind.VALIDATION, "Administrators cannot self-register")

        if not await self.user_repo.check_email_availability(email):
            return Err(ErrorKind.CONFLICT, f"Email {email} is already registered")

        registration = {field: data.get(field) for field in _REGISTRATION_FIELDS}
        registration.update(email=email, hashed_password=hashed_password, role=role.value)

        code = generate_otp()
        await self.store.set(
            self._key(email),
            json.dumps({"otp": code, "user_data": registration}),
            self.ttl_seconds,
        )

        sent = await self.dispatcher.send(email, "registration_otp", {
            "user_name": registration.get("full_name") or registration.get("username") or email,
            "otp": code,
            "expires_in_minutes": self.ttl_seconds // 60,
        })
        if not sent:
            await self.store.delete(self._key(email))
            return Err(ErrorKind.NOTIFICATION_FAILED, "Failed to send OTP email")

        logger.info(f"Registration OTP issued for {email}")
        return Ok({"email": email, "expires_in_seconds": self.ttl_seconds})

    async def verify_registration(self, email: str, code: str) -> Result[User]:
        """
        Confirm a code and create the pending account.

        Args:
            email: Address the code was sent to
            code: Code entered by the applicant

        Returns:
            Ok with the created user, or Err
        """
        email = (email or "").strip().lower()
        stored = await self.store.get(self._key(email))
        if stored is None:
            return Err(ErrorKind.VALIDATION, "OTP expired or not found")

        entry = json.loads(stored)
        if not secrets.compare_digest(str(entry["otp"]), str(code or "").strip()):
            return Err(ErrorKind.VALIDATION, "Invalid OTP")

        await self.store.delete(self._key(email))

        user_data = dict(entry["user_data"])
        user_data["role"] = UserRole(user_data["role"])
        try:
            user = await self.user_repo.create_user(user_data)
        except ValueError as e:
            return Err(ErrorKind.CONFLICT, str(e))
        except Exception as e:
            logger.error(f"Failed to create verified user {email}: {e}")
            return Err(ErrorKind.STORE_WRITE, "Could not complete registration. Please try again.")

        try:
            await self.dispatcher.send(user.email, "welcome", {"user_name": user.display_name})
        except Exception as e:
            logger.error(f"Welcome email to {user.email} failed: {e}")

        logger.info(f"Registration verified for {email} (ID: {user.id})")
        return Ok(user)

import logging
import time
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from digital_archive.config import settings
from digital_archive.models.user import User
from digital_archive.utils.security import generate_token, hash_password, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """Bearer session tokens held in memory, with a failed-login throttle."""

    def __init__(self):
        self._sessions: dict[str, tuple[str, float]] = {}  # token -> (user_id, expires_at)
        self._failed: dict[str, tuple[int, float]] = {}  # key -> (attempts, last_failed_at)

    def _cleanup_expired(self):
        now = time.time()
        self._sessions = {
            t: (uid, exp) for t, (uid, exp) in self._sessions.items() if exp > now
        }

    def login(self, db: Session, email: str, password: str, throttle_key: str = "login") -> dict | None:
        delay = self._get_throttle_delay(throttle_key)
        if delay > 0:
            return {"error": "too_many_attempts", "retry_after_seconds": delay}

        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not verify_password(user.password_hash, password):
            self._record_failed_attempt(throttle_key)
            return None
        if user.status != "active":
            return {"error": "account_blocked"}

        self._failed.pop(throttle_key, None)
        token = generate_token()
        self._sessions[token] = (user.id, time.time() + settings.token_ttl_seconds)
        logger.info("User %s (%s) signed in", user.id, user.role)
        return {
            "token": token,
            "expires_in_seconds": settings.token_ttl_seconds,
            "user_id": user.id,
            "role": user.role,
        }

    def validate_token(self, token: str) -> str | None:
        self._cleanup_expired()
        session = self._sessions.get(token)
        if session is None:
            return None
        user_id, _ = session
        # Sliding expiry: every authenticated request extends the session.
        self._sessions[token] = (user_id, time.time() + settings.token_ttl_seconds)
        return user_id

    def logout(self, token: str):
        self._sessions.pop(token, None)

    def revoke_user(self, user_id: str):
        self._sessions = {t: s for t, s in self._sessions.items() if s[0] != user_id}

    def clear(self):
        self._sessions.clear()
        self._failed.clear()

    def _get_throttle_delay(self, key: str) -> float:
        attempts, last_failed_at = self._failed.get(key, (0, 0.0))
        if attempts < 3:
            return 0
        if attempts < 5:
            delay = 5.0
        elif attempts < 10:
            delay = 30.0
        else:
            delay = 300.0
        remaining = delay - (time.time() - last_failed_at)
        return max(0, remaining)

    def _record_failed_attempt(self, key: str):
        attempts, _ = self._failed.get(key, (0, 0.0))
        self._failed[key] = (attempts + 1, time.time())


def ensure_admin(db: Session) -> User | None:
    """Create the platform admin from settings if no admin account exists yet."""
    if not settings.admin_password:
        return None
    existing = db.query(User).filter(User.role == "admin").first()
    if existing:
        return existing
    admin = User(
        id=str(uuid.uuid4()),
        name="Administrator",
        email=settings.admin_email.lower(),
        role="admin",
        password_hash=hash_password(settings.admin_password),
        status="active",
        created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    db.add(admin)
    db.commit()
    logger.info("Seeded admin account %s", admin.email)
    return admin


auth_service = AuthService()

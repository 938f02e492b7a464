"""
cms/auth.py -- Admin login with bcrypt hashes and temporary lockout.

Rules:
    - Passwords are stored as bcrypt hashes in ``users.json``.
    - Every wrong password increments ``loginAttempts``.  On the fifth
      consecutive failure ``lockUntil`` is set to now + 15 minutes.
    - While ``now < lockUntil`` every attempt is rejected, even with the
      right password, and the counter is left alone.
    - A successful login resets ``loginAttempts`` to 0, clears
      ``lockUntil`` and stamps ``lastLogin``.

Session handling is the caller's business; ``login()`` only answers
whether the credentials are acceptable and returns the public user fields.

Usage::

    from cms.auth import AuthService

    auth = AuthService(repository)
    result = auth.login("admin", "password")
    if result["success"]:
        session["user"] = result["user"]
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Any

import bcrypt

from datastore.utils import ensure_utc, now_utc, parse_iso, to_iso

logger = logging.getLogger(__name__)

MAX_LOGIN_ATTEMPTS = 5
LOCK_MINUTES = 15
BCRYPT_ROUNDS = 10
MIN_PASSWORD_LENGTH = 8

_MESSAGES = {
    "missing_input": {
        "th": "กรุณากรอกชื่อผู้ใช้และรหัสผ่าน",
        "en": "Please enter your username and password.",
    },
    "invalid_credentials": {
        "th": "ชื่อผู้ใช้หรือรหัสผ่านไม่ถูกต้อง",
        "en": "Invalid username or password.",
    },
    "locked": {
        "th": "บัญชีถูกล็อคชั่วคราว กรุณารอ {minutes} นาที",
        "en": "The account is temporarily locked. Please wait {minutes} minutes.",
    },
    "just_locked": {
        "th": "บัญชีถูกล็อคชั่วคราว {minutes} นาที เนื่องจากพยายามเข้าสู่ระบบผิดหลายครั้ง",
        "en": "Too many failed attempts. The account is locked for {minutes} minutes.",
    },
    "login_ok": {"th": "เข้าสู่ระบบสำเร็จ", "en": "Logged in successfully."},
    "password_changed": {"th": "เปลี่ยนรหัสผ่านเรียบร้อยแล้ว", "en": "Password changed."},
    "password_too_short": {
        "th": "รหัสผ่านใหม่ต้องมีอย่างน้อย {length} ตัวอักษร",
        "en": "The new password must be at least {length} characters long.",
    },
    "user_not_found": {"th": "ไม่พบผู้ใช้", "en": "User not found."},
}


# ------------------------------------------------------------------
# Password hashing
# ------------------------------------------------------------------

def hash_password(raw: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Return the bcrypt hash of *raw* as text."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(raw.encode("utf-8"), salt).decode("utf-8")


def verify_password(raw: str, hashed: str) -> bool:
    """Check *raw* against a stored bcrypt hash.  Malformed hashes never match."""
    if not raw or not hashed:
        return False
    try:
        return bcrypt.checkpw(raw.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def public_user(user: dict) -> dict:
    """Return the fields of *user* that are safe to put in a session."""
    return {
        "id": user.get("id"),
        "username": user.get("username"),
        "email": user.get("email"),
        "role": user.get("role"),
        "lastLogin": user.get("lastLogin"),
    }


def is_locked(user: dict, now: datetime | None = None) -> bool:
    lock_until = parse_iso(user.get("lockUntil"))
    if lock_until is None:
        return False
    return ensure_utc(now or now_utc()) < lock_until


def minutes_left(user: dict, now: datetime | None = None) -> int:
    """Whole minutes (rounded up) until the lock on *user* expires."""
    lock_until = parse_iso(user.get("lockUntil"))
    if lock_until is None:
        return 0
    seconds = (lock_until - ensure_utc(now or now_utc())).total_seconds()
    return max(0, math.ceil(seconds / 60))


class AuthService:
    """Credential checks against the ``users.json`` document.

    Parameters
    ----------
    repository : datastore.repository.DataRepository
        Source of the user records.
    rounds : int
        bcrypt cost factor used when hashing new passwords.
    """

    def __init__(self, repository, rounds: int = BCRYPT_ROUNDS):
        self.repository = repository
        self.rounds = rounds

    def _msg(self, key: str, **fields) -> str:
        lang = getattr(self.repository, "language", "th")
        return _MESSAGES[key].get(lang, _MESSAGES[key]["th"]).format(**fields)

    def _failure(self, status: str, message: str, **extra) -> dict[str, Any]:
        result = {
            "success": False,
            "status": status,
            "message": message,
            "attemptsLeft": None,
            "lockMinutes": None,
            "user": None,
        }
        result.update(extra)
        return result

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, username: str, password: str, now: datetime | None = None) -> dict[str, Any]:
        """Check credentials and update the lockout bookkeeping.

        Returns
        -------
        dict
            ``success``, ``status`` (``ok``, ``invalid_input``,
            ``invalid_credentials``, ``locked`` or ``error``), ``message``,
            ``attemptsLeft``, ``lockMinutes`` and ``user`` (public fields,
            only on success).
        """
        now = ensure_utc(now or now_utc())
        if not username or not password:
            return self._failure("invalid_input", self._msg("missing_input"))

        loaded = self.repository.get_users()
        if not loaded["success"]:
            return self._failure("error", loaded["error"])
        users = loaded["data"]

        user = next((u for u in users if u.get("username") == username), None)
        if user is None:
            logger.info("Login attempt for unknown user %r", username)
            return self._failure("invalid_credentials", self._msg("invalid_credentials"))

        if is_locked(user, now):
            minutes = minutes_left(user, now)
            logger.info("Rejected login for locked account %s", username)
            return self._failure(
                "locked",
                self._msg("locked", minutes=minutes),
                attemptsLeft=0,
                lockMinutes=minutes,
            )

        if not verify_password(password, user.get("password", "")):
            return self._register_failure(users, user, now)

        user["loginAttempts"] = 0
        user["lockUntil"] = None
        user["lastLogin"] = to_iso(now)
        saved = self.repository.save_users(users)
        if not saved["success"]:
            return self._failure("error", saved["error"])

        logger.info("User %s logged in", username)
        return {
            "success": True,
            "status": "ok",
            "message": self._msg("login_ok"),
            "attemptsLeft": MAX_LOGIN_ATTEMPTS,
            "lockMinutes": None,
            "user": public_user(user),
        }

    def _register_failure(self, users: list, user: dict, now: datetime) -> dict[str, Any]:
        attempts = int(user.get("loginAttempts") or 0) + 1
        user["loginAttempts"] = attempts

        lock_minutes = None
        message = self._msg("invalid_credentials")
        if attempts >= MAX_LOGIN_ATTEMPTS:
            user["lockUntil"] = to_iso(now + timedelta(minutes=LOCK_MINUTES))
            lock_minutes = LOCK_MINUTES
            message = self._msg("just_locked", minutes=LOCK_MINUTES)
            logger.warning(
                "Locked account %s for %d minutes after %d failed logins",
                user.get("username"), LOCK_MINUTES, attempts,
            )

        saved = self.repository.save_users(users)
        if not saved["success"]:
            logger.error("Could not record failed login for %s", user.get("username"))

        return self._failure(
            "locked" if lock_minutes else "invalid_credentials",
            message,
            attemptsLeft=max(0, MAX_LOGIN_ATTEMPTS - attempts),
            lockMinutes=lock_minutes,
        )

    # ------------------------------------------------------------------
    # Password management
    # ------------------------------------------------------------------

    def hash_password(self, raw: str) -> str:
        return hash_password(raw, rounds=self.rounds)

    def verify_password(self, raw: str, hashed: str) -> bool:
        return verify_password(raw, hashed)

    def is_locked(self, user: dict, now: datetime | None = None) -> bool:
        return is_locked(user, now)

    def change_password(self, username: str, old_password: str, new_password: str) -> dict[str, Any]:
        """Replace the password of *username* after checking the old one."""
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            return {
                "success": False,
                "message": self._msg("password_too_short", length=MIN_PASSWORD_LENGTH),
            }

        loaded = self.repository.get_users()
        if not loaded["success"]:
            return {"success": False, "message": loaded["error"]}
        users = loaded["data"]

        user = next((u for u in users if u.get("username") == username), None)
        if user is None:
            return {"success": False, "message": self._msg("user_not_found")}
        if not verify_password(old_password, user.get("password", "")):
            return {"success": False, "message": self._msg("invalid_credentials")}

        user["password"] = self.hash_password(new_password)
        saved = self.repository.save_users(users)
        if not saved["success"]:
            return {"success": False, "message": saved["error"]}

        logger.info("Password changed for %s", username)
        return {"success": True, "message": self._msg("password_changed")}

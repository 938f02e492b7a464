"""
Tests for cms/auth.py

Covers:
    - bcrypt hashing and verification
    - Login success bookkeeping
    - Failed attempts, lockout after five failures, lock expiry
    - Password change
"""

from datetime import datetime, timedelta, timezone

import pytest

from cms.auth import (
    LOCK_MINUTES,
    MAX_LOGIN_ATTEMPTS,
    AuthService,
    hash_password,
    is_locked,
    minutes_left,
    verify_password,
)

NOW = datetime(2025, 5, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def auth(repo):
    users = repo.get_users()["data"]
    users.append({
        "id": "editor-001",
        "username": "editor",
        "password": hash_password("correct horse", rounds=4),
        "email": "editor@example.com",
        "role": "editor",
        "loginAttempts": 0,
        "lockUntil": None,
        "lastLogin": None,
    })
    assert repo.save_users(users)["success"]
    return AuthService(repo, rounds=4)


def _user(repo, username):
    return next(u for u in repo.get_users()["data"] if u["username"] == username)


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------

class TestHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("s3cret-pass", rounds=4)
        assert hashed.startswith("$2b$04$")
        assert verify_password("s3cret-pass", hashed)
        assert not verify_password("wrong", hashed)

    def test_malformed_hash_never_matches(self):
        assert verify_password("anything", "plain-text-password") is False
        assert verify_password("", "$2b$04$abc") is False

    def test_default_admin_password(self, repo):
        admin = repo.get_users()["data"][0]
        assert verify_password("password", admin["password"])


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

class TestLogin:
    def test_success(self, auth, repo):
        result = auth.login("editor", "correct horse", now=NOW)

        assert result["success"] is True
        assert result["status"] == "ok"
        assert result["attemptsLeft"] == MAX_LOGIN_ATTEMPTS
        assert result["user"] == {
            "id": "editor-001",
            "username": "editor",
            "email": "editor@example.com",
            "role": "editor",
            "lastLogin": "2025-05-01T09:00:00.000Z",
        }
        assert "password" not in result["user"]
        assert _user(repo, "editor")["lastLogin"] == "2025-05-01T09:00:00.000Z"

    def test_missing_input(self, auth):
        result = auth.login("", "x")
        assert result["status"] == "invalid_input"
        assert result["message"] == "Please enter your username and password."

    def test_unknown_user(self, auth):
        result = auth.login("ghost", "whatever", now=NOW)
        assert result["status"] == "invalid_credentials"
        assert result["attemptsLeft"] is None

    def test_wrong_password_counts_down(self, auth, repo):
        first = auth.login("editor", "nope", now=NOW)
        second = auth.login("editor", "nope", now=NOW)
        assert first["attemptsLeft"] == 4
        assert second["attemptsLeft"] == 3
        assert _user(repo, "editor")["loginAttempts"] == 2

    def test_success_resets_attempts(self, auth, repo):
        auth.login("editor", "nope", now=NOW)
        auth.login("editor", "correct horse", now=NOW)
        user = _user(repo, "editor")
        assert user["loginAttempts"] == 0
        assert user["lockUntil"] is None


class TestLockout:
    def _fail_five_times(self, auth):
        results = [auth.login("editor", "nope", now=NOW) for _ in range(MAX_LOGIN_ATTEMPTS)]
        return results[-1]

    def test_fifth_failure_locks(self, auth, repo):
        last = self._fail_five_times(auth)
        assert last["status"] == "locked"
        assert last["attemptsLeft"] == 0
        assert last["lockMinutes"] == LOCK_MINUTES

        user = _user(repo, "editor")
        assert user["loginAttempts"] == 5
        assert user["lockUntil"] == "2025-05-01T09:15:00.000Z"

    def test_correct_password_rejected_while_locked(self, auth, repo):
        self._fail_five_times(auth)
        result = auth.login("editor", "correct horse", now=NOW + timedelta(minutes=5))
        assert result["success"] is False
        assert result["status"] == "locked"
        assert result["lockMinutes"] == 10
        assert result["message"] == "The account is temporarily locked. Please wait 10 minutes."
        assert _user(repo, "editor")["loginAttempts"] == 5

    def test_login_after_lock_expires(self, auth, repo):
        self._fail_five_times(auth)
        result = auth.login("editor", "correct horse", now=NOW + timedelta(minutes=16))
        assert result["success"] is True
        user = _user(repo, "editor")
        assert user["loginAttempts"] == 0
        assert user["lockUntil"] is None

    def test_naive_now_is_treated_as_utc(self, auth):
        self._fail_five_times(auth)
        naive = datetime(2025, 5, 1, 9, 1, 0)
        assert auth.login("editor", "correct horse", now=naive)["status"] == "locked"

    def test_lock_helpers(self):
        user = {"lockUntil": "2025-05-01T09:15:00.000Z"}
        assert is_locked(user, NOW)
        assert minutes_left(user, NOW + timedelta(minutes=14, seconds=1)) == 1
        assert not is_locked(user, NOW + timedelta(minutes=15))
        assert minutes_left({"lockUntil": None}, NOW) == 0


# ---------------------------------------------------------------------------
# Password change
# ---------------------------------------------------------------------------

class TestChangePassword:
    def test_change(self, auth):
        result = auth.change_password("editor", "correct horse", "battery staple")
        assert result == {"success": True, "message": "Password changed."}
        assert auth.login("editor", "battery staple", now=NOW)["success"] is True
        assert auth.login("editor", "correct horse", now=NOW)["success"] is False

    def test_too_short(self, auth):
        result = auth.change_password("editor", "correct horse", "short")
        assert result["success"] is False
        assert "8" in result["message"]

    def test_wrong_old_password(self, auth):
        result = auth.change_password("editor", "nope", "long enough pass")
        assert result == {"success": False, "message": "Invalid username or password."}

    def test_unknown_user(self, auth):
        assert auth.change_password("ghost", "x", "long enough pass")["message"] == "User not found."

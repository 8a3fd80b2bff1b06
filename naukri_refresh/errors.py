from __future__ import annotations


class AutomationError(Exception):
    """Базовая ошибка автоматизации с машинно-читаемым кодом причины."""

    reason = "automation_error"

    def __init__(self, message: str = "", reason: str | None = None):
        super().__init__(message or self.reason)
        if reason:
            self.reason = reason


class MissingCredentials(AutomationError):
    reason = "missing_credentials"


# --- Хранилище сессии ---
class SessionNotFound(AutomationError):
    reason = "session_not_found"


class SessionCorrupt(AutomationError):
    reason = "session_corrupt"


class StoreWriteFailure(AutomationError):
    reason = "store_write_failure"


# --- Логин ---
class NavigationFailed(AutomationError):
    reason = "navigation_failed"


class FieldNotFound(AutomationError):
    reason = "field_not_found"


class LoginTimeout(AutomationError):
    reason = "login_timeout"


# --- Профиль ---
class ProfileUpdateFailed(AutomationError):
    reason = "profile_update_failed"

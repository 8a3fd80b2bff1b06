from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit


class OutcomeStatus(str, Enum):
    REUSED = "reused"
    REAUTHENTICATED = "reauthenticated"
    REAUTHENTICATED_UNSAVED = "reauthenticated_unsaved"


class ProfileAction(str, Enum):
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class Credentials:
    identifier: str
    secret: str = field(repr=False)


@dataclass(frozen=True)
class SessionState:
    """Снимок авторизации браузера (cookies + localStorage) для одного origin.

    Формат совпадает с тем, что отдаёт ``BrowserContext.storage_state()``,
    поэтому файл можно без преобразований скормить Playwright обратно.
    """

    origin: str
    cookies: List[Dict[str, Any]] = field(default_factory=list)
    origins: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_storage_state(cls, raw: Dict[str, Any], origin: str) -> "SessionState":
        if not isinstance(raw, dict):
            raise ValueError("storage state must be a JSON object")
        cookies = raw.get("cookies", [])
        origins = raw.get("origins", [])
        if not isinstance(cookies, list) or not isinstance(origins, list):
            raise ValueError("'cookies' and 'origins' must be lists")
        return cls(origin=origin.rstrip("/"), cookies=list(cookies), origins=list(origins))

    def to_storage_state(self) -> Dict[str, Any]:
        return {"cookies": list(self.cookies), "origins": list(self.origins)}

    def local_storage(self) -> List[Dict[str, str]]:
        for entry in self.origins:
            if entry.get("origin", "").rstrip("/") == self.origin:
                return list(entry.get("localStorage", []))
        return []

    def belongs_to(self, origin: str) -> bool:
        host = (urlsplit(origin).hostname or "").lower()
        if not host:
            return False
        for entry in self.origins:
            if (urlsplit(entry.get("origin", "")).hostname or "").lower() == host:
                return True
        for cookie in self.cookies:
            domain = str(cookie.get("domain", "")).lstrip(".").lower()
            # cookie на ".naukri.com" валидна и для www.naukri.com
            if domain and (host == domain or host.endswith("." + domain)):
                return True
        return False


@dataclass(frozen=True)
class RunOutcome:
    status: OutcomeStatus
    warning: Optional[str] = None

    @property
    def session_reused(self) -> bool:
        return self.status is OutcomeStatus.REUSED

    @property
    def persisted(self) -> bool:
        return self.status is not OutcomeStatus.REAUTHENTICATED_UNSAVED


@dataclass
class RunSummary:
    execution_id: str
    success: bool = False
    outcome: Optional[str] = None
    action: Optional[str] = None
    location: Optional[str] = None
    resume: Optional[str] = None
    resume_uploaded: bool = False
    session_reused: Optional[bool] = None
    warning: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None
    duration: str = ""
    duration_ms: int = 0
    timestamp: str = ""
    video_path: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

from __future__ import annotations

from typing import Dict, List, Optional

import pytest
from playwright.sync_api import TimeoutError as PWTimeoutError

from naukri_refresh.config import Config

ORIGIN = "https://www.naukri.com"


def storage_state(token: str = "abc") -> dict:
    return {
        "cookies": [
            {
                "name": "nauk_at",
                "value": token,
                "domain": ".naukri.com",
                "path": "/",
                "expires": 1900000000,
                "httpOnly": True,
                "secure": True,
                "sameSite": "Lax",
            }
        ],
        "origins": [{"origin": ORIGIN, "localStorage": [{"name": "ls_token", "value": token}]}],
    }


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str):
        self.page = page
        self.selector = selector
        self.filled: Optional[str] = None
        self.clicks = 0

    @property
    def first(self) -> "FakeLocator":
        return self

    def wait_for(self, state: str = "visible", timeout: float = 0) -> None:
        self.page.waits.append((self.selector, timeout))
        if self.selector not in self.page.visible:
            raise PWTimeoutError(f"Timeout {timeout}ms exceeded waiting for {self.selector}")

    def fill(self, value: str) -> None:
        self.filled = value
        self.page.filled[self.selector] = value

    def click(self, **_) -> None:
        self.clicks += 1
        if self.page.on_submit is not None:
            self.page.on_submit(self.page)


class FakePage:
    """Минимальная подмена playwright Page для проверок логина и валидации."""

    def __init__(self, visible: Optional[set] = None, routes: Optional[Dict[str, str]] = None, clock=None):
        self.url = "about:blank"
        self.visible = set(visible or ())
        self.routes = routes or {}
        self.goto_error: Optional[Exception] = None
        self.goto_calls: List[str] = []
        self.waits: list = []
        self.filled: Dict[str, str] = {}
        self.on_submit = None
        self.on_poll = None
        self.clock = clock
        self.polls = 0
        self.evaluations: list = []

    def goto(self, url: str, **_) -> None:
        self.goto_calls.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        self.url = self.routes.get(url, url)

    def evaluate(self, script: str, arg=None):
        self.evaluations.append((script, arg))

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def get_by_role(self, role: str, name: str = "", exact: bool = False) -> FakeLocator:
        return FakeLocator(self, f"role={role}[name={name}]")

    def wait_for_load_state(self, state: str = "load", timeout: float = 0) -> None:
        pass

    def wait_for_timeout(self, ms: float) -> None:
        self.polls += 1
        if self.clock is not None:
            self.clock.advance(ms / 1000)
        if self.on_poll is not None:
            self.on_poll(self)


class FakeContext:
    def __init__(self, exported: Optional[dict] = None):
        self.cookies: list = []
        self.cleared = 0
        self.exported = exported or storage_state("fresh")

    def add_cookies(self, cookies: list) -> None:
        self.cookies.extend(cookies)

    def clear_cookies(self) -> None:
        self.cleared += 1
        self.cookies = []

    def storage_state(self) -> dict:
        return self.exported


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        storage_state_path=tmp_path / "storage-states" / "naukri-login.json",
        log_dir=tmp_path / "logs",
        screenshots_dir=tmp_path / "screenshots",
        videos_dir=tmp_path / "videos",
        resumes_dir=tmp_path / "resumes",
        resume_state_path=tmp_path / "resume-state.json",
        login_timeout_s=5.0,
        login_poll_interval_s=0.5,
    )

"""Повторное использование сохранённой сессии и логин.

``SessionManager.ensure_authenticated`` либо подтверждает, что сохранённые
cookies ещё принимаются сайтом, либо выполняет ровно один логин по паролю и
сохраняет новое состояние. После успешного возврата страница гарантированно
авторизована; ошибки логина пробрасываются вызывающему как есть.
"""
from __future__ import annotations

import time
from enum import Enum
from typing import Callable
from urllib.parse import urlsplit

from loguru import logger
from playwright.sync_api import BrowserContext, Error as PWError, Page, TimeoutError as PWTimeoutError

from naukri_refresh.config import Config
from naukri_refresh.domain import Credentials, OutcomeStatus, RunOutcome, SessionState
from naukri_refresh.errors import (
    FieldNotFound,
    LoginTimeout,
    NavigationFailed,
    SessionCorrupt,
    SessionNotFound,
    StoreWriteFailure,
)
from naukri_refresh.persistence import SessionStore
from naukri_refresh.selectors import Selectors


class SessionValidator:
    """Одна ограниченная по времени проверка сохранённой сессии.

    Сам кладёт cookies из ``state`` в контекст и открывает главную; localStorage
    не трогает, его восстанавливает ``SessionManager`` только для принятой сессии.
    """

    def __init__(self, cfg: Config, log=logger, marker_timeout_ms: int = 5000):
        self.cfg = cfg
        self.log = log
        self.marker_timeout_ms = min(marker_timeout_ms, cfg.validation_timeout_ms)

    def is_valid(self, context: BrowserContext, page: Page, state: SessionState) -> bool:
        if state.cookies:
            context.add_cookies(state.cookies)
        try:
            page.goto(self.cfg.home_url, wait_until="domcontentloaded", timeout=self.cfg.validation_timeout_ms)
        except PWError as e:
            self.log.warning(f"Проверка сессии не уложилась в таймаут, считаем её недействительной: {e}")
            return False

        url = page.url
        if Selectors.LOGIN_URL.search(url):
            self.log.debug(f"Редирект на страницу логина: {url}")
            return False
        if Selectors.AUTHENTICATED_URL.search(url):
            return True
        try:
            page.locator(Selectors.LOGGED_IN_MARKER).first.wait_for(state="visible", timeout=self.marker_timeout_ms)
            return True
        except PWError:
            self.log.debug(f"Маркер авторизации не найден на {url}")
            return False


class AuthStep(str, Enum):
    START = "start"
    AWAITING_CREDENTIAL_FORM = "awaiting_credential_form"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class Authenticator:
    """Линейный логин по email/паролю без внутренних повторов.

    Повторная отправка частично заполненной формы небезопасна (капча,
    rate limit); повтор целиком остаётся за планировщиком.
    """

    def __init__(self, cfg: Config, log=logger, clock: Callable[[], float] = time.monotonic):
        self.cfg = cfg
        self.log = log
        self.clock = clock
        self.step = AuthStep.START

    def _enter(self, step: AuthStep) -> None:
        self.step = step
        self.log.debug(f"Логин: шаг {step.value}")

    def _fail(self, exc: Exception) -> Exception:
        self.log.error(f"Логин не удался на шаге {self.step.value}: {exc}")
        self.step = AuthStep.FAILED
        return exc

    def login(self, context: BrowserContext, page: Page, credentials: Credentials) -> SessionState:
        self._enter(AuthStep.START)
        self.log.info(f"Выполняю вход: {credentials.identifier}")
        try:
            page.goto(self.cfg.login_url, wait_until="domcontentloaded", timeout=self.cfg.validation_timeout_ms)
        except PWError as e:
            raise self._fail(NavigationFailed(f"Не открылась страница логина: {e}")) from e

        self._enter(AuthStep.AWAITING_CREDENTIAL_FORM)
        timeout = self.cfg.field_timeout_ms
        identifier = page.locator(Selectors.LOGIN_IDENTIFIER)
        secret = page.locator(Selectors.LOGIN_SECRET)
        submit = page.get_by_role("button", name=Selectors.LOGIN_SUBMIT_NAME, exact=True)
        try:
            identifier.wait_for(state="visible", timeout=timeout)
            identifier.fill(credentials.identifier)
            secret.wait_for(state="visible", timeout=timeout)
            secret.fill(credentials.secret)
            submit.wait_for(state="visible", timeout=timeout)
        except PWError as e:
            raise self._fail(FieldNotFound(f"Поля формы логина недоступны: {e}")) from e

        self._enter(AuthStep.SUBMITTING)
        try:
            submit.click(timeout=timeout)
        except PWError as e:
            raise self._fail(FieldNotFound(f"Кнопка входа не нажимается: {e}")) from e
        try:
            page.wait_for_load_state("domcontentloaded", timeout=timeout)
        except PWTimeoutError:
            # навигации может и не быть (SPA), решает шаг подтверждения
            self.log.debug("После отправки формы не дождались domcontentloaded")

        self._enter(AuthStep.AWAITING_CONFIRMATION)
        if not self._await_confirmation(page):
            raise self._fail(LoginTimeout(
                f"Нет подтверждения входа за {self.cfg.login_timeout_s:g} c (url: {page.url})"
            ))

        self._enter(AuthStep.AUTHENTICATED)
        self.log.info(f"Вход подтверждён: {page.url}")
        return SessionState.from_storage_state(context.storage_state(), self.cfg.base_url)

    def _await_confirmation(self, page: Page) -> bool:
        deadline = self.clock() + self.cfg.login_timeout_s
        poll_ms = self.cfg.login_poll_interval_s * 1000
        while True:
            if Selectors.AUTHENTICATED_URL.search(page.url):
                return True
            if self.clock() >= deadline:
                return False
            page.wait_for_timeout(poll_ms)


class SessionManager:
    def __init__(
        self,
        cfg: Config,
        store: SessionStore,
        validator: SessionValidator,
        authenticator: Authenticator,
        log=logger,
    ):
        self.cfg = cfg
        self.store = store
        self.validator = validator
        self.authenticator = authenticator
        self.log = log

    def _load(self) -> SessionState | None:
        try:
            return self.store.load(self.cfg.base_url)
        except SessionNotFound:
            self.log.info("Сохранённой сессии нет — нужен вход.")
        except SessionCorrupt as e:
            self.log.warning(f"Сохранённая сессия повреждена, игнорирую: {e}")
        return None

    def restore_local_storage(self, page: Page, state: SessionState) -> None:
        items = state.local_storage()
        if not items:
            return
        current = urlsplit(page.url)
        if f"{current.scheme}://{current.netloc}" != state.origin:
            self.log.debug(f"localStorage не восстановлен: страница {page.url} вне {state.origin}")
            return
        try:
            page.evaluate(
                "items => { for (const [k, v] of Object.entries(items)) window.localStorage.setItem(k, v); }",
                {i["name"]: i["value"] for i in items},
            )
        except PWError as e:
            self.log.warning(f"Не удалось восстановить localStorage: {e}")

    def ensure_authenticated(self, context: BrowserContext, page: Page, credentials: Credentials) -> RunOutcome:
        state = self._load()
        if state is not None:
            if self.validator.is_valid(context, page, state):
                self.restore_local_storage(page, state)
                self.log.info(f"Используем сохранённую сессию ({self.store.path})")
                return RunOutcome(OutcomeStatus.REUSED)
            self.log.warning("Сохранённая сессия устарела, выполняю вход заново.")
            context.clear_cookies()

        fresh = self.authenticator.login(context, page, credentials)
        try:
            self.store.save(fresh)
        except StoreWriteFailure as e:
            self.log.warning(f"Вход выполнен, но сессию сохранить не удалось: {e}")
            return RunOutcome(OutcomeStatus.REAUTHENTICATED_UNSAVED, warning=str(e))

        self.log.info(f"Вход выполнен, сессия сохранена: {self.store.path}")
        return RunOutcome(OutcomeStatus.REAUTHENTICATED)

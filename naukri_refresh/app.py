from __future__ import annotations

import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger
from playwright.sync_api import BrowserContext, Error as PWError, Page, sync_playwright

from naukri_refresh.config import Config, build_cli_cfg
from naukri_refresh.domain import Credentials, RunSummary
from naukri_refresh.errors import AutomationError, ProfileUpdateFailed
from naukri_refresh.logging_setup import configure_logging, log_execution
from naukri_refresh.notifier import TelegramNotifier
from naukri_refresh.persistence import ResumeRotation, SessionStore
from naukri_refresh.profile import ProfileClient
from naukri_refresh.session import Authenticator, SessionManager, SessionValidator
from naukri_refresh.utils import cleanup_old_files, format_duration, generate_execution_id

VIEWPORT = {"width": 1280, "height": 720}
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class App:
    def __init__(self, cfg: Config, notifier: Optional[TelegramNotifier] = None):
        self.cfg = cfg
        self.execution_id = cfg.execution_id or generate_execution_id()
        self.log = logger.bind(execution_id=self.execution_id)
        self.store = SessionStore(cfg.storage_state_path)
        self.resumes = ResumeRotation(cfg.resume_state_path, cfg.resumes_dir)
        self.profile = ProfileClient(cfg, self.log)
        self.notifier = notifier or TelegramNotifier(cfg)
        self.manager = SessionManager(
            cfg,
            self.store,
            SessionValidator(cfg, self.log),
            Authenticator(cfg, self.log),
            self.log,
        )

    def _context_options(self) -> dict:
        opts = {
            "viewport": VIEWPORT,
            "user_agent": USER_AGENT,
            "locale": "en-US",
            "color_scheme": "light",
        }
        if self.cfg.record_video:
            Path(self.cfg.videos_dir).mkdir(parents=True, exist_ok=True)
            opts["record_video_dir"] = str(self.cfg.videos_dir)
            opts["record_video_size"] = VIEWPORT
        return opts

    def _upload_resume(self, page: Page, summary: RunSummary) -> None:
        try:
            resume = self.resumes.next_resume()
            if resume is None:
                return
            summary.resume = resume.name
            summary.resume_uploaded = self.profile.upload_resume(page, resume)
        finally:
            self.resumes.cleanup_temp()

    def _run_flow(self, context: BrowserContext, page: Page, credentials: Credentials, summary: RunSummary) -> None:
        outcome = self.manager.ensure_authenticated(context, page, credentials)
        summary.outcome = outcome.status.value
        summary.session_reused = outcome.session_reused
        summary.warning = outcome.warning

        if self.cfg.dry_run:
            self.log.info("[DRY-RUN] Авторизация проверена, профиль не меняем.")
            return

        action = self.profile.toggle_preferred_location(page, self.cfg.preferred_city)
        summary.action = action.value

        if self.cfg.upload_resume:
            self._upload_resume(page, summary)

        if self.cfg.logout_after_run:
            try:
                self.profile.logout(page)
            except ProfileUpdateFailed as e:
                self.log.warning(str(e))

    def _run_browser(self, credentials: Credentials, summary: RunSummary) -> None:
        with sync_playwright() as p:
            browser = p.chromium.launch(
                headless=self.cfg.headless,
                slow_mo=self.cfg.slow_mo_ms,
                args=["--disable-blink-features=AutomationControlled"],
            )
            context = None
            page = None
            try:
                context = browser.new_context(**self._context_options())
                page = context.new_page()
                page.set_default_timeout(30000)
                page.on("console", lambda msg: self.log.debug(f"[browser] {msg.type} {msg.text}"))
                self._run_flow(context, page, credentials, summary)
            finally:
                video = page.video if page is not None else None
                if context is not None:
                    try:
                        context.close()
                    except PWError as e:
                        self.log.warning(f"Не удалось закрыть контекст: {e}")
                if video is not None:
                    try:
                        summary.video_path = str(video.path())
                        self.log.info(f"Запись сессии сохранена: {summary.video_path}")
                    except PWError as e:
                        self.log.warning(f"Не удалось получить путь к видео: {e}")
                browser.close()

    def run(self) -> int:
        configure_logging(self.cfg)
        started = time.monotonic()
        summary = RunSummary(execution_id=self.execution_id, location=self.cfg.preferred_city)
        self.log.info(
            f"Старт: headless={self.cfg.headless}, город={self.cfg.preferred_city}, dry_run={self.cfg.dry_run}"
        )
        cleanup_old_files(self.cfg.videos_dir, self.cfg.video_retention_days)

        try:
            credentials = Config.credentials()
            self._run_browser(credentials, summary)
            summary.success = True
        except AutomationError as e:
            summary.error, summary.reason = str(e), e.reason
            self.log.error(f"Автоматизация завершилась ошибкой [{e.reason}]: {e}")
        except PWError as e:
            summary.error, summary.reason = str(e), "browser_error"
            self.log.exception(f"Ошибка браузера: {e}")
        except Exception as e:
            summary.error, summary.reason = str(e) or type(e).__name__, "unexpected_error"
            self.log.exception(f"Непредвиденная ошибка: {e}")

        duration_ms = int((time.monotonic() - started) * 1000)
        summary.duration_ms = duration_ms
        summary.duration = format_duration(duration_ms)
        summary.timestamp = datetime.now().astimezone().isoformat()

        log_execution(summary)
        if summary.success:
            self.log.success(f"Готово за {summary.duration} ({summary.outcome})")
        self.notifier.send(summary)
        return 0 if summary.success else 1


def main(argv: List[str] | None = None) -> int:
    return App(build_cli_cfg(argv)).run()

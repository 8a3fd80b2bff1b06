from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List

from naukri_refresh.domain import Credentials
from naukri_refresh.errors import MissingCredentials


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _csv(name: str, default: str) -> List[str]:
    return [p.strip() for p in os.getenv(name, default).split(",") if p.strip()]


@dataclass(frozen=True)
class Config:
    base_url: str = "https://www.naukri.com"
    preferred_city: str = "Kolkata"
    headless: bool = False
    slow_mo_ms: int = 50
    storage_state_path: Path = Path("storage-states/naukri-login.json")
    validation_timeout_ms: int = 30000
    field_timeout_ms: int = 15000
    login_timeout_s: float = 20.0
    login_poll_interval_s: float = 0.5
    log_dir: Path = Path("logs")
    log_level: str = "INFO"
    log_retention_days: int = 14
    screenshots_dir: Path = Path("screenshots")
    record_video: bool = True
    videos_dir: Path = Path("videos")
    video_retention_days: int = 7
    upload_resume: bool = True
    resumes_dir: Path = Path("resumes")
    resume_state_path: Path = Path("resume-state.json")
    logout_after_run: bool = False
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    telegram_attach_execution_log: bool = False
    telegram_send_video: bool = True
    execution_id: str = ""
    schedule_times: List[str] | None = None
    schedule_days: List[str] | None = None
    schedule_timezone: str = "Asia/Kolkata"
    use_xvfb: bool = False
    verbose: bool = False
    dry_run: bool = False

    @property
    def home_url(self) -> str:
        return self.base_url.rstrip("/") + "/"

    @property
    def login_url(self) -> str:
        return self.base_url.rstrip("/") + "/nlogin/login"

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    @staticmethod
    def from_env() -> "Config":
        from dotenv import load_dotenv
        load_dotenv()

        return Config(
            base_url=os.getenv("NAUKRI_BASE_URL", "https://www.naukri.com").strip(),
            preferred_city=os.getenv("NAUKRI_TOGGLE_CITY", "Kolkata").strip(),
            headless=_flag("HEADLESS"),
            slow_mo_ms=int(os.getenv("SLOW_MO_MS", "50")),
            storage_state_path=Path(os.getenv("STORAGE_STATE_PATH", "storage-states/naukri-login.json")),
            validation_timeout_ms=int(os.getenv("VALIDATION_TIMEOUT_MS", "30000")),
            field_timeout_ms=int(os.getenv("FIELD_TIMEOUT_MS", "15000")),
            login_timeout_s=float(os.getenv("LOGIN_TIMEOUT_S", "20")),
            login_poll_interval_s=float(os.getenv("LOGIN_POLL_INTERVAL_S", "0.5")),
            log_dir=Path(os.getenv("LOG_DIR", "logs")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_retention_days=int(os.getenv("LOG_RETENTION_DAYS", "14")),
            screenshots_dir=Path(os.getenv("SCREENSHOTS_DIR", "screenshots")),
            record_video=_flag("RECORD_VIDEO", "true"),
            videos_dir=Path(os.getenv("VIDEOS_DIR", "videos")),
            video_retention_days=int(os.getenv("VIDEO_RETENTION_DAYS", "7")),
            upload_resume=_flag("UPLOAD_RESUME", "true"),
            resumes_dir=Path(os.getenv("RESUMES_DIR", "resumes")),
            resume_state_path=Path(os.getenv("RESUME_STATE_PATH", "resume-state.json")),
            # выход сбрасывает серверную сессию, и сохранённый файл станет бесполезен
            logout_after_run=_flag("LOGOUT_AFTER_RUN"),
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN", "").strip(),
            telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID", "").strip(),
            telegram_attach_execution_log=_flag("TELEGRAM_ATTACH_EXECUTION_LOG"),
            telegram_send_video=_flag("TELEGRAM_SEND_VIDEO", "true"),
            execution_id=os.getenv("EXECUTION_ID", "").strip(),
            schedule_times=_csv("SCHEDULE_TIMES", "08:30,11:30"),
            schedule_days=_csv("SCHEDULE_DAYS", "monday,tuesday,wednesday,thursday,friday"),
            schedule_timezone=os.getenv("SCHEDULE_TIMEZONE", "Asia/Kolkata").strip(),
            use_xvfb=_flag("USE_XVFB"),
        )

    @staticmethod
    def credentials() -> Credentials:
        email = os.getenv("USER_EMAIL", "").strip()
        password = os.getenv("USER_PASSWORD", "")
        if not email or not password:
            raise MissingCredentials("Не заданы USER_EMAIL или USER_PASSWORD в окружении.")
        return Credentials(identifier=email, secret=password)


def build_cli_cfg(argv: List[str] | None = None) -> Config:
    parser = argparse.ArgumentParser(description="Refresh the Naukri profile: toggle preferred location, upload resume")
    parser.add_argument("--headless", action="store_true", help="Запуск браузера без UI")
    parser.add_argument("--dry-run", action="store_true", help="Только авторизация, профиль не трогаем")
    parser.add_argument("--verbose", action="store_true", help="Подробные логи")
    parser.add_argument("--city", type=str, help="Переопределить город для переключения")
    parser.add_argument("--no-upload", action="store_true", help="Не загружать резюме")
    args = parser.parse_args(argv)

    cfg = Config.from_env()

    updates = {
        "dry_run": bool(args.dry_run),
        "verbose": bool(args.verbose),
    }
    # флаг CLI только включает headless, выключить его можно через HEADLESS=false
    if args.headless:
        updates["headless"] = True
    if args.city:
        updates["preferred_city"] = args.city.strip()
    if args.no_upload:
        updates["upload_resume"] = False

    return replace(cfg, **updates)

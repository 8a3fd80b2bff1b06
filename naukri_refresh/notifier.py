from __future__ import annotations

import html
import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import requests
from loguru import logger

from naukri_refresh.config import Config
from naukri_refresh.domain import RunSummary
from naukri_refresh.logging_setup import execution_log_path

API_URL = "https://api.telegram.org/bot{token}/{method}"
SNAPSHOT_KEYS = ("action", "location", "session_reused", "duration_ms", "timestamp")
# Telegram считает 4096 символов уже после разбора HTML, режем только текст полей
MAX_FIELD_LEN = 1500


@dataclass(frozen=True)
class NotifyResult:
    delivered: bool
    reason: Optional[str] = None


def format_timestamp(value: str, tz: str = "Asia/Kolkata") -> str:
    if not value:
        return ""
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return value
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.astimezone(ZoneInfo(tz)).strftime("%d.%m.%Y %H:%M:%S ") + "IST"


def _e(value: Any) -> str:
    return html.escape(str(value), quote=False)


def _clip(value: Any) -> str:
    text = str(value)
    if len(text) <= MAX_FIELD_LEN:
        return text
    return text[: MAX_FIELD_LEN - 1] + "…"


def build_message(summary: RunSummary, log_entry: Optional[Dict[str, Any]] = None) -> str:
    merged = {**(log_entry or {}), **summary.as_dict()}
    ok = bool(merged.get("success"))
    lines = [f"{'✅' if ok else '❌'} <b>Обновление профиля: {'успех' if ok else 'ошибка'}</b>"]

    head = []
    if merged.get("execution_id"):
        head.append(f"• <b>ID:</b> <code>{_e(merged['execution_id'])}</code>")
    if merged.get("duration"):
        head.append(f"• <b>Длительность:</b> {_e(merged['duration'])}")
    if merged.get("timestamp"):
        head.append(f"• <b>Время:</b> {_e(format_timestamp(merged['timestamp']))}")
    if head:
        lines += ["", "<b>Итог</b>", *head]

    details = []
    if merged.get("outcome"):
        details.append(f"• <b>Сессия:</b> {_e(merged['outcome'])}")
    if merged.get("action"):
        details.append(f"• <b>Действие:</b> {_e(merged['action'])}")
    if merged.get("location"):
        details.append(f"• <b>Город:</b> {_e(merged['location'])}")
    if merged.get("session_reused") is not None:
        details.append(f"• <b>Сессия переиспользована:</b> {'да' if merged['session_reused'] else 'нет'}")
    if merged.get("resume"):
        state = "загружено" if merged.get("resume_uploaded") else "не загружено"
        details.append(f"• <b>Резюме:</b> {_e(merged['resume'])} ({state})")
    if details:
        lines += ["", "<b>Детали</b>", *details]

    if log_entry:
        snapshot = "\n".join(f"{k}: {log_entry[k]}" for k in SNAPSHOT_KEYS if log_entry.get(k) not in (None, ""))
        if snapshot:
            lines += ["", "<b>Из лога</b>", f"<pre>{_e(snapshot)}</pre>"]

    if merged.get("warning"):
        lines += ["", "<b>Предупреждение</b>", f"<pre>{_e(_clip(merged['warning']))}</pre>"]
    if not ok and merged.get("error"):
        reason = f" [{_e(merged['reason'])}]" if merged.get("reason") else ""
        lines += ["", f"<b>Ошибка</b>{reason}", f"<pre>{_e(_clip(merged['error']))}</pre>"]

    return "\n".join(lines)


class TelegramNotifier:
    def __init__(self, cfg: Config, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.http = session or requests.Session()

    def _url(self, method: str) -> str:
        return API_URL.format(token=self.cfg.telegram_bot_token, method=method)

    def find_log_entry(self, summary: RunSummary) -> Optional[Dict[str, Any]]:
        if not summary.timestamp:
            return None
        path = execution_log_path(self.cfg.log_dir, summary.timestamp[:10])
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            logger.debug(f"Лог запусков недоступен для снимка: {e}")
            return None
        for line in lines:
            if not line.strip():
                continue
            try:
                extra = json.loads(line)["record"]["extra"]
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Не удалось разобрать строку лога запусков: {e}")
                continue
            if extra.get("execution_id") == summary.execution_id:
                return extra
        return None

    def _post(self, method: str, **kwargs) -> bool:
        try:
            response = self.http.post(self._url(method), timeout=60, **kwargs)
            response.raise_for_status()
            return True
        except requests.exceptions.RequestException as e:
            body = getattr(getattr(e, "response", None), "text", "")
            logger.warning(f"Telegram {method} не удался: {e} {body}".rstrip())
            return False

    def _send_file(self, method: str, field: str, path: Path, caption: str) -> bool:
        try:
            with Path(path).open("rb") as fh:
                return self._post(
                    method,
                    data={"chat_id": self.cfg.telegram_chat_id, "caption": caption},
                    files={field: (Path(path).name, fh)},
                )
        except OSError as e:
            logger.debug(f"Файл для Telegram недоступен ({path}): {e}")
            return False

    def send(self, summary: RunSummary) -> NotifyResult:
        if not self.cfg.telegram_enabled:
            logger.debug("Уведомление в Telegram пропущено: нет TELEGRAM_BOT_TOKEN или TELEGRAM_CHAT_ID")
            return NotifyResult(False, "missing-config")

        payload = {
            "chat_id": self.cfg.telegram_chat_id,
            "text": build_message(summary, self.find_log_entry(summary)),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        if not self._post("sendMessage", json=payload):
            return NotifyResult(False, "request-error")
        logger.info("Уведомление в Telegram отправлено")

        if self.cfg.telegram_send_video and summary.video_path:
            self._send_file("sendVideo", "video", Path(summary.video_path), f"Запись запуска {summary.execution_id}")
        if self.cfg.telegram_attach_execution_log and summary.timestamp:
            log_path = execution_log_path(self.cfg.log_dir, summary.timestamp[:10])
            self._send_file("sendDocument", "document", log_path, f"Execution log - ID: {summary.execution_id}")
        return NotifyResult(True)

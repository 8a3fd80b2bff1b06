from __future__ import annotations

import base64
import binascii
import json
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from naukri_refresh.domain import SessionState
from naukri_refresh.errors import SessionCorrupt, SessionNotFound, StoreWriteFailure


class SessionStore:
    """Единственный слот с сохранённой авторизацией (Playwright storage state)."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self, origin: str) -> SessionState:
        if not self.path.is_file():
            raise SessionNotFound(f"Файл сессии не найден: {self.path}")
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            state = SessionState.from_storage_state(raw, origin)
        except (OSError, ValueError) as e:
            # json.JSONDecodeError и UnicodeDecodeError тоже ValueError
            raise SessionCorrupt(f"Не удалось прочитать файл сессии {self.path}: {e}") from e
        if not state.belongs_to(origin):
            raise SessionCorrupt(f"Сохранённая сессия не относится к {origin}")
        return state

    def save(self, state: SessionState) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state.to_storage_state(), fh, ensure_ascii=False, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise StoreWriteFailure(f"Не удалось сохранить сессию в {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug(f"Временный файл уже удалён: {tmp_name}")


@dataclass(frozen=True)
class ResumeFile:
    index: int
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


class ResumeRotation:
    """Чередует два резюме между запусками (1, 2, 1, ...)."""

    SLOTS = (1, 2)
    DEFAULT_NAMES = ("resume{n}.pdf", "resume{n}.docx", "resume-{n}.pdf", "resume-{n}.docx")

    def __init__(self, state_path: str | Path, resumes_dir: str | Path, env: Optional[Dict[str, str]] = None):
        self.state_path = Path(state_path)
        self.resumes_dir = Path(resumes_dir)
        self.temp_dir = self.resumes_dir.parent / "temp-cvs"
        self.env = os.environ if env is None else env

    def read_state(self) -> dict:
        try:
            state = json.loads(self.state_path.read_text(encoding="utf-8"))
            if isinstance(state, dict) and isinstance(state.get("lastUsedIndex"), int):
                return state
        except (OSError, ValueError):
            pass
        return {"lastUsedIndex": 0}

    def write_state(self, index: int) -> None:
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"lastUsedIndex": index, "lastUpdated": datetime.now(timezone.utc).isoformat()}
        self.state_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def resolve(self, index: int) -> Optional[ResumeFile]:
        env_path = self.env.get(f"RESUME_PATH_{index}")
        if env_path:
            p = Path(env_path)
            if not p.is_absolute():
                p = self.resumes_dir.parent / p
            return ResumeFile(index, p) if p.is_file() else None

        encoded = self.env.get(f"CV_FILE_{index}_BASE64")
        if encoded:
            ext = self.env.get(f"CV_FILE_{index}_EXT", "pdf")
            p = self.temp_dir / f"resume-{index}.{ext}"
            try:
                content = base64.b64decode(encoded, validate=True)
                self.temp_dir.mkdir(parents=True, exist_ok=True)
                p.write_bytes(content)
            except (binascii.Error, ValueError, OSError) as e:
                logger.warning(f"Не удалось декодировать CV_FILE_{index}_BASE64: {e}")
                return None
            return ResumeFile(index, p)

        for tpl in self.DEFAULT_NAMES:
            p = self.resumes_dir / tpl.format(n=index)
            if p.is_file():
                return ResumeFile(index, p)
        return None

    def next_resume(self) -> Optional[ResumeFile]:
        last = self.read_state()["lastUsedIndex"]
        index = 2 if last == 1 else 1
        for candidate in (index, 1 if index == 2 else 2):
            resume = self.resolve(candidate)
            if resume:
                self.write_state(candidate)
                if candidate != index:
                    logger.warning(f"Резюме #{index} не найдено, используем #{candidate}")
                return resume
        logger.info("Резюме не найдены — загрузка пропускается.")
        return None

    def cleanup_temp(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)

import random
import string
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable

from loguru import logger

VIDEO_EXTENSIONS = (".webm", ".mp4", ".avi", ".mov", ".mkv")


def human_pause(a: float = 0.3, b: float = 0.8) -> None:
    time.sleep(random.uniform(a, b))


def generate_execution_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"exec-{int(time.time() * 1000)}-{suffix}"


def format_duration(ms: int) -> str:
    seconds = int(ms // 1000)
    minutes, rest = divmod(seconds, 60)
    if minutes > 0:
        return f"{minutes}m {rest}s"
    return f"{seconds}s"


def cleanup_old_files(directory: Path, retention_days: int, extensions: Iterable[str] = VIDEO_EXTENSIONS) -> int:
    """Удаляет файлы старше ``retention_days``; возвращает число удалённых."""
    directory = Path(directory)
    if retention_days <= 0 or not directory.is_dir():
        return 0
    exts = {e.lower() for e in extensions}
    cutoff = (datetime.now() - timedelta(days=retention_days)).timestamp()
    deleted = 0
    for path in directory.iterdir():
        if not path.is_file() or path.suffix.lower() not in exts:
            continue
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                deleted += 1
        except OSError as e:
            logger.warning(f"Не удалось удалить {path}: {e}")
    if deleted:
        logger.info(f"Удалено старых записей: {deleted} ({directory})")
    return deleted

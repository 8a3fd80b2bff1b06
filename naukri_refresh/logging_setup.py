from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from naukri_refresh.config import Config
from naukri_refresh.domain import RunSummary

CONSOLE_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> <level>{level: <8}</level> <level>{message}</level>"


def _is_summary(record) -> bool:
    return bool(record["extra"].get("execution_summary"))


def execution_log_path(log_dir: Path, date: str) -> Path:
    return Path(log_dir) / f"execution-{date}.log"


def configure_logging(cfg: Config) -> None:
    """stdout + суточные JSON-файлы: combined, error и отдельный лог итогов запусков."""
    level = "DEBUG" if cfg.verbose else cfg.log_level
    retention = f"{cfg.log_retention_days} days"
    log_dir = Path(cfg.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(sys.stdout, level=level, colorize=True, format=CONSOLE_FORMAT)
    logger.add(
        str(log_dir / "combined-{time:YYYY-MM-DD}.log"),
        level="INFO", rotation="00:00", retention=retention, serialize=True, encoding="utf-8",
    )
    logger.add(
        str(log_dir / "error-{time:YYYY-MM-DD}.log"),
        level="ERROR", rotation="00:00", retention=retention, serialize=True, encoding="utf-8", backtrace=True,
    )
    logger.add(
        str(log_dir / "execution-{time:YYYY-MM-DD}.log"),
        level="INFO", rotation="00:00", retention=retention, serialize=True, encoding="utf-8", filter=_is_summary,
    )


def log_execution(summary: RunSummary) -> None:
    logger.bind(execution_summary=True, **summary.as_dict()).info("Execution summary")

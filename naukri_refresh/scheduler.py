"""Запуск обновления профиля по расписанию (по умолчанию 08:30 и 11:30 IST, пн-пт).

Каждый тик порождает отдельный процесс ``python -m naukri_refresh``; пока
предыдущий запуск жив, новый не стартует: хранилище сессии рассчитано на
одного писателя.
"""
from __future__ import annotations

import signal
import subprocess
import sys
import time
from pathlib import Path
from typing import List, Optional

import schedule
from loguru import logger

from naukri_refresh.config import Config

DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class Scheduler:
    def __init__(self, cfg: Config, runner: Optional[schedule.Scheduler] = None):
        self.cfg = cfg
        self.runner = runner or schedule.Scheduler()
        self.child: Optional[subprocess.Popen] = None
        # относительные пути из .env считаются от каталога, где запущен планировщик
        self.workdir = Path.cwd()
        self._stop = False

    def command(self) -> List[str]:
        cmd = [sys.executable, "-m", "naukri_refresh"]
        if self.cfg.use_xvfb:
            cmd = ["xvfb-run", "-a", *cmd]
        return cmd

    def register(self) -> int:
        count = 0
        for day in self.cfg.schedule_days or []:
            day = day.strip().lower()
            if day not in DAYS:
                raise ValueError(f"Неизвестный день недели в SCHEDULE_DAYS: {day}")
            for at in self.cfg.schedule_times or []:
                getattr(self.runner.every(), day).at(at, self.cfg.schedule_timezone).do(self.trigger)
                count += 1
        return count

    def _reap(self) -> None:
        if self.child is not None and self.child.poll() is not None:
            logger.info(f"Запуск завершился с кодом {self.child.returncode}")
            self.child = None

    def trigger(self) -> bool:
        self._reap()
        if self.child is not None:
            logger.warning("Предыдущий запуск ещё идёт — пропускаю этот тик.")
            return False
        logger.info(f"Запускаю: {' '.join(self.command())}")
        try:
            self.child = subprocess.Popen(self.command(), cwd=str(self.workdir))
        except OSError as e:
            logger.error(f"Не удалось запустить обновление профиля: {e}")
            return False
        return True

    def stop(self, *_):
        self._stop = True
        logger.warning("Получен сигнал прерывания. Планировщик останавливается…")

    def run_forever(self, poll_s: float = 30.0) -> int:
        signal.signal(signal.SIGINT, self.stop)
        signal.signal(signal.SIGTERM, self.stop)
        jobs = self.register()
        logger.info(
            f"Планировщик запущен: {jobs} заданий, {','.join(self.cfg.schedule_times or [])} "
            f"({self.cfg.schedule_timezone})"
        )
        while not self._stop:
            self.runner.run_pending()
            self._reap()
            time.sleep(poll_s)
        if self.child is not None:
            self.child.wait()
            self._reap()
        return 0


def main() -> int:
    logger.remove()
    logger.add(sys.stdout, level="INFO", colorize=True, format="<level>{message}</level>")
    return Scheduler(Config.from_env()).run_forever()


if __name__ == "__main__":
    sys.exit(main())

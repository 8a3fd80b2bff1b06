from __future__ import annotations

from datetime import datetime
from pathlib import Path

from loguru import logger
from playwright.sync_api import Error as PWError, Page

from naukri_refresh.config import Config
from naukri_refresh.domain import ProfileAction
from naukri_refresh.errors import ProfileUpdateFailed
from naukri_refresh.persistence import ResumeFile
from naukri_refresh.selectors import Selectors
from naukri_refresh.utils import human_pause


class ProfileClient:
    def __init__(self, cfg: Config, log=logger):
        self.cfg = cfg
        self.log = log

    # --------- Вспомогательные методы UI ---------
    @staticmethod
    def is_visible(locator, timeout: int = 1000) -> bool:
        try:
            locator.first.wait_for(state="visible", timeout=timeout)
            return True
        except PWError:
            return False

    def make_shot(self, page: Page, tag: str) -> None:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        base = Path(self.cfg.screenshots_dir) / f"naukri_{tag}_{ts}"
        try:
            base.parent.mkdir(parents=True, exist_ok=True)
            page.screenshot(path=str(base.with_suffix(".png")), full_page=True)
            base.with_suffix(".html").write_text(page.content(), encoding="utf-8")
            self.log.warning(f"Скриншот и HTML сохранены: {base}.png")
        except (PWError, OSError) as e:
            self.log.warning(f"Не удалось сделать скриншот: {e}")

    # --------- Профиль ---------
    def open_career_preferences(self, page: Page):
        profile_link = page.locator(Selectors.PROFILE_LINK)
        if not self.is_visible(profile_link, timeout=30000):
            page.goto(self.cfg.base_url.rstrip("/") + "/mnjuser/profile", wait_until="domcontentloaded")
        else:
            self.log.info("Открываю страницу профиля")
            profile_link.first.click()
            page.wait_for_load_state("domcontentloaded")

        heading = page.locator(Selectors.CAREER_PREFS_HEADING)
        heading.wait_for(state="visible", timeout=30000)
        heading.locator(Selectors.CAREER_PREFS_EDIT).first.click()

        modal = page.locator(Selectors.PREFS_MODAL)
        modal.wait_for(state="visible", timeout=20000)
        modal.locator(Selectors.PREFS_MODAL_TITLE).wait_for(state="visible", timeout=10000)
        self.log.info("Открыт редактор карьерных предпочтений")
        return modal

    def toggle_preferred_location(self, page: Page, city: str) -> ProfileAction:
        """Убирает город из предпочтительных, если он там есть, иначе добавляет."""
        try:
            modal = self.open_career_preferences(page)
            chip = modal.locator(Selectors.LOCATION_CHIP.format(city=city))
            if chip.count() > 0:
                self.log.info(f"Город {city} уже выбран — убираю")
                action = ProfileAction.REMOVED
                remove = chip.locator(Selectors.LOCATION_CHIP_REMOVE).first
                remove.wait_for(state="visible", timeout=10000)
                remove.click()
                try:
                    chip.first.wait_for(state="detached", timeout=10000)
                except PWError:
                    self.log.warning(f"Чип {city} не исчез за отведённое время")
            else:
                self.log.info(f"Города {city} нет — добавляю")
                action = ProfileAction.ADDED
                location_input = modal.locator(Selectors.LOCATION_INPUT)
                location_input.click()
                location_input.fill("")
                location_input.press_sequentially(city, delay=120)
                page.wait_for_timeout(800)
                suggestion = modal.locator(Selectors.LOCATION_SUGGESTION.format(city=city)).first
                suggestion.wait_for(state="visible", timeout=10000)
                suggestion.click()
                chip.first.wait_for(state="visible", timeout=10000)

            modal.locator(Selectors.PREFS_SAVE).click()
            modal.wait_for(state="hidden", timeout=20000)
        except PWError as e:
            self.make_shot(page, "career_preferences")
            raise ProfileUpdateFailed(f"Не удалось обновить предпочтительные города: {e}") from e

        self.log.success(f"Карьерные предпочтения сохранены ({action.value}: {city})")
        return action

    def upload_resume(self, page: Page, resume: ResumeFile) -> bool:
        self.log.info(f"Загружаю резюме: {resume.name}")
        try:
            container = page.locator(Selectors.RESUME_CONTAINER).first
            container.scroll_into_view_if_needed()
            human_pause(0.4, 0.7)
            container.locator(Selectors.RESUME_UPDATE_BUTTON).wait_for(state="visible", timeout=15000)
            container.locator(Selectors.RESUME_FILE_INPUT).set_input_files(str(resume.path))

            progress = page.locator(Selectors.RESUME_PROGRESS)
            progress.wait_for(state="visible", timeout=10000)
            progress.wait_for(state="hidden", timeout=30000)
            page.wait_for_timeout(2000)
        except PWError as e:
            # не критично, продолжаем
            self.log.warning(f"Загрузка резюме не удалась: {e}")
            self.make_shot(page, "resume_upload")
            return False
        self.log.success("Резюме загружено ✅")
        return True

    def logout(self, page: Page) -> None:
        try:
            page.locator(Selectors.DRAWER_ICON).click()
            page.wait_for_timeout(500)
            logout_link = page.locator(Selectors.LOGOUT_LINK)
            logout_link.wait_for(state="visible", timeout=15000)
            logout_link.click()
            page.locator(Selectors.HEADER_LOGIN_LINK).wait_for(state="visible", timeout=30000)
        except PWError as e:
            self.make_shot(page, "logout")
            raise ProfileUpdateFailed(f"Не удалось выйти из аккаунта: {e}", reason="logout_failed") from e
        self.log.info("Выход выполнен.")

import re


class Selectors:
    # --- URL-маркеры ---
    LOGIN_URL = re.compile(r"nlogin/login", re.I)
    AUTHENTICATED_URL = re.compile(r"naukri\.com/(mnjuser|myhomepage)", re.I)

    # --- Login ---
    LOGIN_IDENTIFIER = "#usernameField"
    LOGIN_SECRET = "#passwordField"
    LOGIN_SUBMIT_NAME = "Login"
    LOGGED_IN_MARKER = ".view-profile-wrapper"

    # --- Header / logout ---
    HEADER_LOGIN_LINK = "a#login_Layer"
    DRAWER_ICON = ".nI-gNb-drawer__icon"
    LOGOUT_LINK = 'a.nI-gNb-list-cta[title="Logout"]'

    # --- Profile ---
    PROFILE_LINK = '.view-profile-wrapper a[href="/mnjuser/profile"]'
    CAREER_PREFS_HEADING = 'h1.section-heading:has-text("Your career preferences")'
    CAREER_PREFS_EDIT = ".new-pencil"
    PREFS_MODAL = '.styles_modal__gNwvD[role="dialog"]'
    PREFS_MODAL_TITLE = 'h1.title:has-text("Career preferences")'
    LOCATION_INPUT = "#location"
    LOCATION_CHIP = '.selectedChips .chip:has-text("{city}")'
    LOCATION_CHIP_REMOVE = ".fn-chips-cross"
    LOCATION_SUGGESTION = '.sugItemWrapper:has-text("{city}")'
    PREFS_SAVE = 'button#submit-btn.btn-blue:has-text("Save")'

    # --- Resume upload ---
    RESUME_CONTAINER = ".resume-upload-container"
    RESUME_UPDATE_BUTTON = 'button.upload-button:has-text("Update resume")'
    RESUME_FILE_INPUT = 'input[type="file"].upload-input'
    RESUME_PROGRESS = ".resume-upload-container .progressbar"

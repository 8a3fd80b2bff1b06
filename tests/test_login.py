import pytest
from playwright.sync_api import TimeoutError as PWTimeoutError

from conftest import ORIGIN, FakeClock, FakeContext, FakePage, storage_state
from naukri_refresh.domain import Credentials, SessionState
from naukri_refresh.errors import FieldNotFound, LoginTimeout, NavigationFailed
from naukri_refresh.selectors import Selectors
from naukri_refresh.session import Authenticator, AuthStep, SessionValidator

CREDS = Credentials("user@example.com", "s3cret")
SUBMIT = f"role=button[name={Selectors.LOGIN_SUBMIT_NAME}]"
FORM = {Selectors.LOGIN_IDENTIFIER, Selectors.LOGIN_SECRET, SUBMIT}
STATE = SessionState.from_storage_state(storage_state(), ORIGIN)


# --------- SessionValidator ---------
@pytest.mark.parametrize(
    "landing, visible, expected",
    [
        ("https://www.naukri.com/mnjuser/homepage", set(), True),
        ("https://www.naukri.com/nlogin/login?URL=https://www.naukri.com/", set(), False),
        ("https://www.naukri.com/", {Selectors.LOGGED_IN_MARKER}, True),
        ("https://www.naukri.com/", set(), False),
    ],
)
def test_validator_classifies_landing_page(cfg, landing, visible, expected):
    page = FakePage(visible=visible, routes={cfg.home_url: landing})
    assert SessionValidator(cfg).is_valid(FakeContext(), page, STATE) is expected
    assert page.goto_calls == [cfg.home_url]


def test_validator_treats_timeout_as_invalid(cfg):
    page = FakePage()
    page.goto_error = PWTimeoutError("Timeout 30000ms exceeded")
    assert SessionValidator(cfg).is_valid(FakeContext(), page, STATE) is False


def test_validator_marker_wait_is_bounded(cfg):
    page = FakePage(routes={cfg.home_url: "https://www.naukri.com/"})
    SessionValidator(cfg, marker_timeout_ms=5000).is_valid(FakeContext(), page, STATE)
    assert page.waits == [(Selectors.LOGGED_IN_MARKER, 5000)]


def test_validator_puts_saved_cookies_into_context(cfg):
    page = FakePage(routes={cfg.home_url: "https://www.naukri.com/mnjuser/homepage"})
    context = FakeContext()

    assert SessionValidator(cfg).is_valid(context, page, STATE) is True
    assert context.cookies == STATE.cookies
    assert page.evaluations == []


# --------- Authenticator ---------
def _land_on_homepage(page):
    page.url = "https://www.naukri.com/mnjuser/homepage"


def test_login_reaches_authenticated_and_captures_state(cfg):
    page = FakePage(visible=FORM)
    page.on_submit = _land_on_homepage
    auth = Authenticator(cfg, clock=FakeClock())

    state = auth.login(FakeContext(storage_state("fresh")), page, CREDS)

    assert auth.step is AuthStep.AUTHENTICATED
    assert page.goto_calls == [cfg.login_url]
    assert page.filled == {Selectors.LOGIN_IDENTIFIER: CREDS.identifier, Selectors.LOGIN_SECRET: CREDS.secret}
    assert state.origin == ORIGIN
    assert state.cookies[0]["value"] == "fresh"


def test_login_polls_until_marker_appears(cfg):
    page = FakePage(visible=FORM, clock=None)
    page.on_poll = lambda p: _land_on_homepage(p) if p.polls == 3 else None
    auth = Authenticator(cfg, clock=FakeClock())

    auth.login(FakeContext(), page, CREDS)

    assert page.polls == 3
    assert auth.step is AuthStep.AUTHENTICATED


def test_login_times_out_without_marker(cfg):
    clock = FakeClock()
    page = FakePage(visible=FORM, clock=clock)
    auth = Authenticator(cfg, clock=clock)

    with pytest.raises(LoginTimeout) as excinfo:
        auth.login(FakeContext(), page, CREDS)

    assert excinfo.value.reason == "login_timeout"
    assert auth.step is AuthStep.FAILED
    # 5 c при опросе раз в 0.5 c
    assert page.polls == 10


def test_login_missing_field_is_fatal(cfg):
    page = FakePage(visible={Selectors.LOGIN_IDENTIFIER})
    auth = Authenticator(cfg, clock=FakeClock())

    with pytest.raises(FieldNotFound) as excinfo:
        auth.login(FakeContext(), page, CREDS)

    assert excinfo.value.reason == "field_not_found"
    assert auth.step is AuthStep.FAILED
    assert Selectors.LOGIN_SECRET not in page.filled


def test_login_navigation_error(cfg):
    page = FakePage(visible=FORM)
    page.goto_error = PWTimeoutError("net::ERR_TIMED_OUT")
    auth = Authenticator(cfg, clock=FakeClock())

    with pytest.raises(NavigationFailed):
        auth.login(FakeContext(), page, CREDS)
    assert page.filled == {}

import pytest

from app.core.config import get_settings
from app.core.feature_flags import recaptcha_flag
from app.utils.rate_limit import rate_limiter
from factories import make_settings


@pytest.fixture(autouse=True)
def _reset_process_state():
    # The settings cache, captcha toggle and rate limiter are process-wide.
    get_settings.cache_clear()
    recaptcha_flag.reset()
    rate_limiter.reset()
    yield
    get_settings.cache_clear()
    recaptcha_flag.reset()
    rate_limiter.reset()


@pytest.fixture
def settings():
    return make_settings()

import pytest

from polar_weight_sync.config import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(
        POLAR_USERNAME="runner@example.com",
        POLAR_PASSWORD="secret-password",
        POLAR_COOKIES_FILE=str(tmp_path / "cookies.json"),
        DISABLE_DIRECT_API=False,
        SETTLE_DELAY_SECONDS=0,
        REQUEST_DELAY_SECONDS=0,
    )

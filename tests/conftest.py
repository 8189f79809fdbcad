"""
Pytest configuration for the sc-toolkit test suite.

Puts ``src`` on the Python path and provides shared fixtures: client
configuration, a credential, a ``respx`` router for transport-level HTTP
mocking, and an in-memory fake of the SoundCloud client for orchestration
tests.
"""
import sys
from pathlib import Path

import pytest
import respx

# Project root for "tests.*" imports, src for the installed-package layout
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

src_dir = project_root / "src"
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from scclient.models import Credential, SoundCloudConfig  # noqa: E402
from tests.fakes import FakeSoundCloudClient  # noqa: E402

API_URL = "https://api.soundcloud.com"
TOKEN_URL = "https://secure.soundcloud.com/oauth/token"


@pytest.fixture
def sc_config():
    """SoundCloudConfig with jitter disabled so delays are deterministic."""
    return SoundCloudConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        api_url=API_URL,
        token_url=TOKEN_URL,
        max_rate_limit_retries=3,
        backoff_jitter=0.0,
        page_size=2,
    )


@pytest.fixture
def credential():
    return Credential(access_token="old-access", refresh_token="old-refresh")


@pytest.fixture
def router():
    """respx router intercepting every httpx call made during the test."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def fake_client():
    return FakeSoundCloudClient()


@pytest.fixture
def no_sleep(mocker):
    """Replace the pause primitive used by the client with a recording mock."""
    return mocker.patch("scclient.client.sleep", new=mocker.AsyncMock())

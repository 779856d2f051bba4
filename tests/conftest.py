from unittest.mock import Mock

import pytest
import requests

from app.config import Settings
from tests.fakes import FakeResponse, RecordingCompletionClient


@pytest.fixture
def settings() -> Settings:
    return Settings(
        store_name="Thunder Tactical",
        llm_mode="stub",
        bc_store_hash="abc123",
        bc_access_token="token-xyz",
        bc_client_id="client-1",
    )


@pytest.fixture
def unconfigured_settings() -> Settings:
    return Settings(llm_mode="stub")


@pytest.fixture
def session():
    s = Mock(spec=requests.Session)
    s.get.return_value = FakeResponse(404)
    return s


@pytest.fixture
def completion():
    return RecordingCompletionClient()

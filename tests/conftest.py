from datetime import date
from unittest.mock import MagicMock

import pytest

from fitbit_exporter.client import UpstreamClient
from fitbit_exporter.metrics import MetricsBuffer
from fitbit_exporter.token_store import CredentialStore

TODAY = date(2023, 1, 10)


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else ""

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


@pytest.fixture
def store():
    return CredentialStore("access-1", "refresh-1")


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(store, session):
    return UpstreamClient(store, api_base="https://api.test", session=session)


@pytest.fixture
def buffer():
    return MetricsBuffer(today=lambda: TODAY)

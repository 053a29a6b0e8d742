"""
Pytest configuration and shared fixtures.
"""

import pytest
from typing import Any, Dict
from urllib.parse import parse_qsl, urlsplit

from connectid.logger import StructuredLogger, reset_logger
from connectid.optout import OptOutFlag
from connectid.storage import MemoryStore
from connectid.submodule import ConnectIdSubmodule

HASHED_EMAIL = "6bda6f2fa268bf0438b5423a9861a2cedaa5dec163c03f743cfe05c08a8397b2"
PIXEL_ID = "1234"
PROD_ENDPOINT = f"https://ups.analytics.yahoo.com/ups/{PIXEL_ID}/fed"
OVERRIDE_ENDPOINT = "https://foo/bar"


class RecordingTransport:
    """Fake transport that records calls and answers through the callbacks."""

    def __init__(self, body: str = "", error: Any = None, raises: Exception = None):
        self.body = body
        self.error = error
        self.raises = raises
        self.calls = []

    def __call__(self, url, callbacks, data=None, options=None):
        self.calls.append({"url": url, "callbacks": callbacks, "data": data, "options": options})
        if self.raises is not None:
            raise self.raises
        if self.error is not None:
            callbacks["error"](self.error)
        else:
            callbacks["success"](self.body)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_url(self) -> str:
        return self.calls[-1]["url"]


def query_params(url: str) -> Dict[str, str]:
    """Decode the query string of a request URL, keeping empty values."""
    return dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))


@pytest.fixture(autouse=True)
def fresh_global_logger():
    """Each test starts without a global logger."""
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def quiet_logger() -> StructuredLogger:
    return StructuredLogger(name="connectid.test", enable_console=False, enable_file=False)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def submodule(transport, store, quiet_logger) -> ConnectIdSubmodule:
    return ConnectIdSubmodule(transport=transport, opt_out=OptOutFlag(store), logger=quiet_logger)


@pytest.fixture
def consent_data() -> Dict[str, Any]:
    return {
        "gdpr": {
            "gdprApplies": 1,
            "consentString": "GDPR_CONSENT_STRING",
        },
        "uspConsent": "USP_CONSENT_STRING",
    }


@pytest.fixture
def valid_config() -> Dict[str, Any]:
    return {"name": "connectId", "params": {"he": HASHED_EMAIL, "pixelId": PIXEL_ID}}

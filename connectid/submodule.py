"""
Yahoo ConnectID identity submodule.

Resolves a consent-aware ConnectID for the host's user-id registry.
The lifecycle is two-phase: ``prepare`` validates configuration and
consent and returns an inspectable request, ``execute`` sends it and
reports the decoded payload to a completion callback. ``resolve``
wraps both in a deferred handle for hosts that expect the callback
shape. ``decode`` turns a stored payload back into the public id.
"""

import json
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import quote, urlencode

from .consent import consent_params
from .logger import StructuredLogger, get_logger
from .optout import OptOutFlag
from .schema import CONFIG_ERROR, config_params, is_first_party, validate_params
from .storage import MemoryStore
from .transport import RequestsTransport

MODULE_NAME = "connectId"
VENDOR_ID = 25
PLACEHOLDER = "__PIXEL_ID__"
UPS_ENDPOINT = f"https://ups.analytics.yahoo.com/ups/{PLACEHOLDER}/fed"
REQUEST_OPTIONS = {"method": "GET", "with_credentials": True}

OnComplete = Callable[[Optional[Any]], None]


def format_qs(params: Mapping[str, Any]) -> str:
    """Percent-encode query parameters, keeping insertion order."""
    return urlencode(params, quote_via=quote, safe="")


class PreparedRequest:
    """A validated, not yet sent identity request."""

    def __init__(self, endpoint: str, params: Dict[str, str], options: Optional[Dict[str, Any]] = None):
        self.endpoint = endpoint
        self.params = dict(params)
        self.options = dict(options or REQUEST_OPTIONS)

    @property
    def url(self) -> str:
        return f"{self.endpoint}?{format_qs(self.params)}"

    def __repr__(self) -> str:
        return f"PreparedRequest(url={self.url!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PreparedRequest):
            return NotImplemented
        return (self.endpoint, self.params, self.options) == (other.endpoint, other.params, other.options)


class ResolutionHandle:
    """Deferred identity lookup. Nothing is sent until ``callback`` is called."""

    def __init__(self, submodule: "ConnectIdSubmodule", request: PreparedRequest):
        self.submodule = submodule
        self.request = request

    def callback(self, on_complete: OnComplete) -> None:
        self.submodule.execute(self.request, on_complete)


class ConnectIdSubmodule:
    """User-id submodule for Yahoo ConnectID."""

    name = MODULE_NAME
    gvlid = VENDOR_ID

    def __init__(
        self,
        transport: Optional[Callable] = None,
        opt_out: Optional[OptOutFlag] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            transport: Callable ``(url, callbacks, data, options)``; defaults
                to a RequestsTransport created on first use
            opt_out: Opt-out marker reader; defaults to an empty in-memory store
            logger: Diagnostic channel; defaults to the global logger
        """
        self._transport = transport
        self.opt_out = opt_out or OptOutFlag(MemoryStore())
        self.logger = logger or get_logger()

    def get_transport(self) -> Callable:
        """Return the transport used for identity fetches."""
        if self._transport is None:
            self._transport = RequestsTransport()
        return self._transport

    def has_opted_out(self) -> bool:
        return self.opt_out.read()

    def decode(self, value: Any) -> Optional[Dict[str, Any]]:
        """
        Decode a stored payload for passing to bid requests.

        Returns:
            {"connectId": ...} or None when the user opted out or the
            payload holds no connectid
        """
        if self.has_opted_out():
            return None
        if isinstance(value, Mapping) and value.get("connectid"):
            return {"connectId": value["connectid"]}
        return None

    def prepare(self, config: Any, consent: Optional[Mapping[str, Any]] = None) -> Optional[PreparedRequest]:
        """
        Validate configuration and consent and build the identity request.

        Returns:
            PreparedRequest, or None when opted out or misconfigured
        """
        if self.has_opted_out():
            return None

        params = config_params(config)
        errors = validate_params(params)
        if errors:
            self.logger.record_config_error()
            self.logger.error(CONFIG_ERROR, errors=errors)
            return None

        data = {
            "1p": "1" if is_first_party(params.get("1p")) else "0",
            "he": params["he"],
        }
        data.update(consent_params(consent))
        if params.get("pixelId"):
            data["pixelId"] = str(params["pixelId"])

        endpoint = params.get("endpoint") or UPS_ENDPOINT.replace(PLACEHOLDER, str(params.get("pixelId")))
        return PreparedRequest(endpoint, data, REQUEST_OPTIONS)

    def execute(self, request: PreparedRequest, on_complete: OnComplete) -> None:
        """
        Send a prepared request and report the parsed payload.

        ``on_complete`` is called exactly once, with the decoded JSON body
        or None. Failures are logged, never raised.
        """
        completed = []

        def finish(payload=None):
            completed.append(True)
            on_complete(payload)

        def success(body):
            payload = None
            if body:
                try:
                    payload = json.loads(body)
                except (ValueError, RecursionError) as e:
                    self.logger.record_fetch_failure("DecodeError")
                    self.logger.error(f"{MODULE_NAME}: invalid ID response", error=str(e))
                else:
                    self.logger.record_fetch_success()
            finish(payload)

        def error(err):
            self.logger.record_fetch_failure("TransportError")
            self.logger.error(f"{MODULE_NAME}: ID fetch encountered an error", error=str(err))
            finish()

        self.logger.record_fetch_attempt()
        try:
            self.get_transport()(request.url, {"success": success, "error": error}, None, dict(request.options))
        except Exception as e:
            if completed:
                raise
            error(e)

    def resolve(self, config: Any, consent: Optional[Mapping[str, Any]] = None) -> Optional[ResolutionHandle]:
        """Gets the Yahoo ConnectID as a deferred handle, or None."""
        request = self.prepare(config, consent)
        if request is None:
            return None
        return ResolutionHandle(self, request)

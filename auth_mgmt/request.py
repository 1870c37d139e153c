"""Request - Builds, sends and parses one management API call.

A request object is a single-use builder: headers, parameters and body are
set fluently, then execute() performs the call through the shared httpx
client and returns the typed result or raises a structured error.

Usage:
    request = CustomRequest(client, url, "POST", User)
    user = request.add_header("X-Request-Id", rid).set_body(new_user).execute()
"""

from __future__ import annotations

import logging
import re
from typing import Any, Generic, NoReturn, TypeVar

import httpx

from auth_mgmt.exceptions import (
    RATE_LIMIT_UNKNOWN,
    APIError,
    ParseError,
    RateLimitError,
    RequestBuildError,
    TransportError,
)
from auth_mgmt.json_codec import JsonCodec

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTENT_TYPE_APPLICATION_JSON = "application/json"
STATUS_CODE_TOO_MANY_REQUESTS = 429

RATE_LIMIT_LIMIT_HEADER = "X-RateLimit-Limit"
RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"
RATE_LIMIT_RESET_HEADER = "X-RateLimit-Reset"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_DECIMAL_PATTERN = re.compile(r"[+-]?[0-9]+")


def _header_as_int(headers: httpx.Headers, name: str) -> int:
    """Parse a header as a signed 64-bit integer, RATE_LIMIT_UNKNOWN if absent or malformed."""
    value = headers.get(name)
    if value is None:
        return RATE_LIMIT_UNKNOWN
    value = value.strip()
    # int() would also take "1_000" or non-ASCII digits
    if not _DECIMAL_PATTERN.fullmatch(value):
        return RATE_LIMIT_UNKNOWN
    parsed = int(value)
    if not _INT64_MIN <= parsed <= _INT64_MAX:
        return RATE_LIMIT_UNKNOWN
    return parsed


class BaseRequest(Generic[T]):
    """Sends a request over a shared httpx client and releases the response.

    Subclasses build the httpx.Request and turn the (unread, streaming)
    response into a result. The response is closed on every path, whether
    the subclass returns or raises.
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def execute(self) -> T:
        """Execute the request and return the parsed result.

        Raises:
            RequestBuildError: If the request could not be built. Nothing is sent.
            TransportError: If the request fails due to connection/timeout/read errors.
            APIError: If the server answered with a non-2xx status (RateLimitError
                for 429) or the 2xx body did not parse (ParseError).
        """
        request = self._create_request()

        try:
            response = self._client.send(request, stream=True)
        except httpx.RequestError as e:
            raise self._transport_error(e) from e

        try:
            logger.debug("%s %s -> %d", request.method, request.url, response.status_code)
            return self._parse_response(response)
        except httpx.RequestError as e:
            # Body read failures surface here, after the status line arrived.
            raise self._transport_error(e) from e
        finally:
            response.close()

    def _create_request(self) -> httpx.Request:
        raise NotImplementedError

    def _parse_response(self, response: httpx.Response) -> T:
        raise NotImplementedError

    @staticmethod
    def _transport_error(e: httpx.RequestError) -> TransportError:
        if isinstance(e, httpx.TimeoutException):
            return TransportError(f"Request timeout: {e}")
        if isinstance(e, httpx.ConnectError):
            return TransportError(f"Connection error: {e}")
        return TransportError(f"Failed to execute request: {e}")


class CustomRequest(BaseRequest[T]):
    """A JSON request whose 2xx body is deserialized into result_type.

    The outgoing payload is the body set with set_body() if any, otherwise
    the parameter mapping if non-empty, otherwise nothing. Content-Type is
    always application/json and cannot be overridden by add_header().
    """

    def __init__(
        self,
        client: httpx.Client,
        url: str,
        method: str,
        result_type: Any,
        codec: JsonCodec | None = None,
    ) -> None:
        """Initialize the request.

        Args:
            client: Shared HTTP client used to send the request.
            url: Absolute URL, or a path relative to the client's base_url.
            method: HTTP method (GET, POST, etc.).
            result_type: Type descriptor for the 2xx body, e.g. a BaseModel
                subclass, dict[str, Any] or list[User].
            codec: JSON codec. Defaults to a JsonCodec with default settings.
        """
        super().__init__(client)
        self._url = url
        self._method = method.upper()
        self._result_type = result_type
        self._codec = codec or JsonCodec()
        self._headers = httpx.Headers()
        self._parameters: dict[str, Any] = {}
        self._body: Any = None

    @property
    def method(self) -> str:
        return self._method

    @property
    def url(self) -> str:
        return self._url

    def add_header(self, name: str, value: str) -> CustomRequest[T]:
        """Set a header, replacing any previous value for the same name."""
        self._headers[name] = value
        return self

    def add_parameter(self, name: str, value: Any) -> CustomRequest[T]:
        """Set a payload parameter. Ignored for the payload if a body is set."""
        self._parameters[name] = value
        return self

    def set_body(self, value: Any) -> CustomRequest[T]:
        """Set the payload object. Takes priority over parameters."""
        self._body = value
        return self

    def _create_request(self) -> httpx.Request:
        content = self._create_payload()

        headers = self._headers.copy()
        # Set last so a caller header in any casing cannot replace it
        headers["Content-Type"] = CONTENT_TYPE_APPLICATION_JSON

        try:
            return self._client.build_request(
                self._method, self._url, content=content, headers=headers
            )
        except httpx.InvalidURL as e:
            raise RequestBuildError(f"Couldn't create the request: {e}") from e

    def _create_payload(self) -> bytes | None:
        if self._body is None and not self._parameters:
            return None
        try:
            return self._codec.serialize(
                self._body if self._body is not None else self._parameters
            )
        except (ValueError, TypeError) as e:
            raise RequestBuildError("Couldn't create the request body.") from e

    def _parse_response(self, response: httpx.Response) -> T:
        if not response.is_success:
            self._raise_response_error(response)

        payload = response.read()
        try:
            return self._codec.deserialize(payload, self._result_type)
        except ValueError as e:
            raise ParseError(response.status_code) from e

    def _raise_response_error(self, response: httpx.Response) -> NoReturn:
        """Raise the structured error for a non-2xx response.

        429 is answered from headers alone; the body is left unread.
        """
        if response.status_code == STATUS_CODE_TOO_MANY_REQUESTS:
            raise self._create_rate_limit_error(response)

        response.read()
        try:
            fields = self._codec.parse_object(response.content)
        except ValueError as e:
            raise APIError(response.status_code, raw_payload=response.text) from e
        raise APIError(response.status_code, fields=fields)

    @staticmethod
    def _create_rate_limit_error(response: httpx.Response) -> RateLimitError:
        error = RateLimitError(
            limit=_header_as_int(response.headers, RATE_LIMIT_LIMIT_HEADER),
            remaining=_header_as_int(response.headers, RATE_LIMIT_REMAINING_HEADER),
            reset=_header_as_int(response.headers, RATE_LIMIT_RESET_HEADER),
        )
        logger.warning(
            "Rate limit reached (limit=%d, remaining=%d, reset=%d)",
            error.limit,
            error.remaining,
            error.reset,
        )
        return error


class VoidRequest(CustomRequest[None]):
    """A request whose successful response carries nothing the caller needs.

    The 2xx body is drained without being parsed; error responses are
    handled exactly as in CustomRequest.
    """

    def __init__(
        self,
        client: httpx.Client,
        url: str,
        method: str,
        codec: JsonCodec | None = None,
    ) -> None:
        super().__init__(client, url, method, None, codec)

    def _parse_response(self, response: httpx.Response) -> None:
        if not response.is_success:
            self._raise_response_error(response)
        response.read()
        return None

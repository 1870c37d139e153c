"""Management client - Owns the shared HTTP client and builds requests bound to it.

Usage:
    with ManagementClient(load_client_config_from_env()) as mgmt:
        users = mgmt.request("GET", "users", list[dict[str, Any]]).execute()
        mgmt.void_request("DELETE", f"users/{user_id}").execute()
"""

from __future__ import annotations

import base64
import json
import logging
import ssl
from typing import Any
from urllib.parse import quote

import httpx

from auth_mgmt.json_codec import JsonCodec
from auth_mgmt.models import ClientConfig
from auth_mgmt.request import CustomRequest, VoidRequest

logger = logging.getLogger(__name__)

CLIENT_NAME = "auth-mgmt"
CLIENT_VERSION = "0.1.0"
TELEMETRY_HEADER = "Client-Info"


def telemetry_header_value() -> str:
    """Base64url-encoded JSON identifying this library to the server."""
    info = json.dumps({"name": CLIENT_NAME, "version": CLIENT_VERSION}, separators=(",", ":"))
    return base64.urlsafe_b64encode(info.encode("utf-8")).decode("ascii")


class ManagementClient:
    """Entry point for building management API requests.

    All requests built by one ManagementClient share its httpx.Client, and
    with it the connection pool, timeout, TLS settings and default headers.

    Usage:
        client = ManagementClient(config)
        try:
            client.request("GET", "users", dict[str, Any]).execute()
        finally:
            client.close()

    Or with context manager:
        with ManagementClient(config) as client:
            ...
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: httpx.Client | None = None,
        codec: JsonCodec | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Tenant connection settings.
            http_client: Pre-built client to send requests with. It is used as-is
                         (no config headers are applied) and close() leaves it open.
            codec: JSON codec shared by all built requests.
        """
        self._config = config
        self._codec = codec or JsonCodec()
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.Client(**self._build_client_kwargs(config))
        logger.debug("Management client ready for %s", config.base_url)

    def __enter__(self) -> "ManagementClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            self._http_client.close()

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def url(self, *segments: str) -> str:
        """Build an absolute URL under base_url, percent-encoding each segment."""
        return self.base_url + "/".join(quote(str(segment), safe="") for segment in segments)

    def request(self, method: str, path: str, result_type: Any) -> CustomRequest[Any]:
        """Create a request whose 2xx body is deserialized into result_type.

        Args:
            method: HTTP method.
            path: Path relative to base_url ("users/abc"), or an absolute URL.
            result_type: Type descriptor for the response body.
        """
        return CustomRequest(
            self._http_client, self._resolve(path), method, result_type, self._codec
        )

    def void_request(self, method: str, path: str) -> VoidRequest:
        """Create a request whose 2xx body is discarded."""
        return VoidRequest(self._http_client, self._resolve(path), method, self._codec)

    def _resolve(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return self.base_url + path.lstrip("/")

    def _build_client_kwargs(self, config: ClientConfig) -> dict[str, Any]:
        """Build kwargs for httpx.Client from the tenant configuration.

        Args:
            config: Tenant configuration.

        Returns:
            Dictionary of kwargs for httpx.Client constructor.
        """
        headers = {
            "Authorization": f"Bearer {config.api_token}",
            "User-Agent": f"{CLIENT_NAME}/{CLIENT_VERSION}",
        }
        if config.telemetry:
            headers[TELEMETRY_HEADER] = telemetry_header_value()
        headers.update(config.headers)

        kwargs: dict[str, Any] = {
            "base_url": config.base_url,
            "headers": headers,
            "timeout": config.timeout,
        }

        if config.ca_bundle:
            ssl_context = ssl.create_default_context()
            ssl_context.load_verify_locations(config.ca_bundle)
            kwargs["verify"] = ssl_context
        elif not config.verify_ssl:
            kwargs["verify"] = False
        # else: use httpx default (True)

        return kwargs

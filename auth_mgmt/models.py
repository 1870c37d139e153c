"""Configuration models for auth-mgmt.

All models use Pydantic v2.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClientConfig(BaseModel):
    """Connection settings for one management API tenant."""

    model_config = ConfigDict(extra="forbid")

    domain: str = Field(description="Tenant domain, e.g. my-tenant.example.com (scheme optional)")
    api_token: str = Field(description="Management API bearer token", repr=False)
    base_path: str = Field(default="api/v2", description="Path prefix of the management API")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra headers sent with every request (supports ${ENV_VAR} substitution)",
    )
    verify_ssl: bool = Field(default=True, description="Verify the server's TLS certificate")
    ca_bundle: str | None = Field(
        default=None, description="Path to a CA bundle; overrides verify_ssl when set"
    )
    telemetry: bool = Field(default=True, description="Send the Client-Info telemetry header")

    @field_validator("domain", "api_token")
    @classmethod
    def check_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @property
    def base_url(self) -> str:
        """Absolute base URL of the management API, always ending with '/'."""
        domain = self.domain.rstrip("/")
        if "://" not in domain:
            domain = f"https://{domain}"
        path = self.base_path.strip("/")
        if not path:
            return f"{domain}/"
        return f"{domain}/{path}/"

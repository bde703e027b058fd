"""
S3 Backend Configuration
========================

Immutable configuration for the S3-compatible object store backend.
Frozen dataclass, validated at construction time, loadable from the
environment.

Supports AWS S3, MinIO, Cloudflare R2, and other S3-compatible stores.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True, slots=True)
class S3Config:
    """
    S3-compatible object store configuration.

    Thread Safety:
    -------------
    Frozen dataclass - immutable after construction.

    Attributes:
        bucket_name: S3 bucket name (required).
        region: AWS region.
        endpoint_url: Custom endpoint for MinIO/R2 (None for AWS).
        access_key_id: AWS access key (None for IAM role auth).
        secret_access_key: AWS secret key (None for IAM role auth).
        session_token: Temporary session token for STS.
        max_pool_connections: Max pooled HTTP connections.
        connect_timeout_seconds: TCP connect timeout.
        read_timeout_seconds: Socket read timeout.
        request_timeout_seconds: Upper bound for one store call, retries included.
        max_retries: Max retry attempts for transient failures.
        use_ssl: Use HTTPS for connections.
        verify_ssl: Verify SSL certificates (disable for self-signed).
    """

    bucket_name: str
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None

    max_pool_connections: int = 10
    connect_timeout_seconds: int = 5
    read_timeout_seconds: int = 60
    request_timeout_seconds: float = 30.0
    max_retries: int = 3

    use_ssl: bool = True
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """
        Validate configuration invariants.

        Raises:
            ValueError: If any invariant is violated.
        """
        if not self.bucket_name or len(self.bucket_name) < 3:
            raise ValueError("bucket_name must be at least 3 characters")
        if self.max_pool_connections <= 0:
            raise ValueError(
                f"max_pool_connections must be > 0, got {self.max_pool_connections}"
            )
        if self.connect_timeout_seconds <= 0:
            raise ValueError("connect_timeout_seconds must be > 0")
        if self.read_timeout_seconds <= 0:
            raise ValueError("read_timeout_seconds must be > 0")
        if self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

    @classmethod
    def from_env(cls, prefix: str = "S3") -> "S3Config":
        """
        Construct configuration from environment variables.

        Environment Variables:
        - {prefix}_BUCKET: Bucket name (required)
        - {prefix}_REGION: AWS region (default: us-east-1)
        - {prefix}_ENDPOINT_URL: Custom endpoint URL
        - {prefix}_ACCESS_KEY_ID: AWS access key ID
        - {prefix}_SECRET_ACCESS_KEY: AWS secret access key
        - AWS_SESSION_TOKEN: STS session token
        - {prefix}_MAX_POOL_CONNECTIONS: Connection pool size (default: 10)
        - {prefix}_REQUEST_TIMEOUT: Per-call timeout seconds (default: 30)
        - {prefix}_USE_SSL: Use HTTPS (default: true)
        - {prefix}_VERIFY_SSL: Verify certs (default: true)

        Raises:
            ValueError: If required bucket_name is missing.
        """

        def _get(key: str, default: str = "") -> str:
            return os.environ.get(f"{prefix}_{key}", default)

        def _get_int(key: str, default: int) -> int:
            val = _get(key)
            return int(val) if val else default

        def _get_bool(key: str, default: bool) -> bool:
            val = _get(key).lower()
            if val in ("true", "1", "yes"):
                return True
            if val in ("false", "0", "no"):
                return False
            return default

        bucket = _get("BUCKET")
        if not bucket:
            raise ValueError(f"Environment variable {prefix}_BUCKET is required")

        timeout = _get("REQUEST_TIMEOUT")
        return cls(
            bucket_name=bucket,
            region=_get("REGION", "us-east-1"),
            endpoint_url=_get("ENDPOINT_URL") or None,
            access_key_id=_get("ACCESS_KEY_ID") or os.environ.get("AWS_ACCESS_KEY_ID"),
            secret_access_key=_get("SECRET_ACCESS_KEY")
            or os.environ.get("AWS_SECRET_ACCESS_KEY"),
            session_token=os.environ.get("AWS_SESSION_TOKEN"),
            max_pool_connections=_get_int("MAX_POOL_CONNECTIONS", 10),
            connect_timeout_seconds=_get_int("CONNECT_TIMEOUT", 5),
            read_timeout_seconds=_get_int("READ_TIMEOUT", 60),
            request_timeout_seconds=float(timeout) if timeout else 30.0,
            max_retries=_get_int("MAX_RETRIES", 3),
            use_ssl=_get_bool("USE_SSL", True),
            verify_ssl=_get_bool("VERIFY_SSL", True),
        )

    def get_client_kwargs(self) -> Dict[str, Any]:
        """
        Keyword arguments for ``session.client("s3", ...)``.

        The botocore ``Config`` object is built by the store itself.
        """
        kwargs: Dict[str, Any] = {
            "region_name": self.region,
            "use_ssl": self.use_ssl,
        }
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if self.access_key_id and self.secret_access_key:
            kwargs["aws_access_key_id"] = self.access_key_id
            kwargs["aws_secret_access_key"] = self.secret_access_key
        if self.session_token:
            kwargs["aws_session_token"] = self.session_token
        if not self.verify_ssl:
            kwargs["verify"] = False
        return kwargs

    def origin_url(self) -> str:
        """Base URL of the bucket, path-style for custom endpoints."""
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com"

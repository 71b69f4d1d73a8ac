# -*- coding: utf-8 -*-
"""Location: ./fmgateway/schemas.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

FileMaker Gateway Pydantic Schemas.
This module provides the Pydantic models shared across the gateway:
- Target profiles and their credential variants
- Session entries held by the credential cache
- Structured tool results returned to the MCP client
"""

# Standard
from enum import Enum
import time
from typing import Any, Literal, Optional, Union
from urllib.parse import quote

# Third-Party
from pydantic import BaseModel, ConfigDict, Field, SecretStr

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class SessionState(str, Enum):
    """Observable session state of a target.

    EXPIRED and INVALIDATED are transitions back to NO_SESSION: once the
    credential cache entry is gone the target simply has no session.
    """

    NO_SESSION = "no_session"
    AUTHENTICATING = "authenticating"
    ACTIVE = "active"


class CacheScope(str, Enum):
    """Cache selector accepted by ``fm_clear_cache``."""

    SESSION = "session"
    DATA = "data"
    ALL = "all"


# ---------------------------------------------------------------------------
# Target Schemas
# ---------------------------------------------------------------------------


class UsernamePassword(BaseModel):
    """FileMaker account credentials, sent as HTTP basic auth to the sessions endpoint."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["basic"] = "basic"
    username: str = Field(..., min_length=1)
    password: SecretStr


class ApiKey(BaseModel):
    """API key credential (FileMaker Cloud FMID token)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["api_key"] = "api_key"
    api_key: SecretStr


Credentials = Union[UsernamePassword, ApiKey]


class TargetProfile(BaseModel):
    """One FileMaker database reachable through the Data API.

    Immutable after discovery.

    Examples:
        >>> from pydantic import SecretStr
        >>> t = TargetProfile(id="SALES", server="fm.example.com", database="Sales",
        ...                   credentials=UsernamePassword(username="api", password=SecretStr("pw")))
        >>> t.base_url
        'https://fm.example.com/fmi/data/v1/databases/Sales'
        >>> "pw" in repr(t)
        False
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Identifier taken from the FM_SERVER_<ID> suffix")
    server: str = Field(..., min_length=1, description="Host (and optional port) of FileMaker Server")
    database: str = Field(..., min_length=1, description="Hosted database (file) name")
    protocol: Literal["http", "https"] = "https"
    api_version: str = "v1"
    credentials: Credentials = Field(..., discriminator="kind")

    @property
    def server_url(self) -> str:
        """Data API root of the server, for database-independent calls.

        Returns:
            str: ``{protocol}://{server}/fmi/data/{api_version}``
        """
        return f"{self.protocol}://{self.server}/fmi/data/{self.api_version}"

    @property
    def base_url(self) -> str:
        """Data API root for this database.

        Returns:
            str: ``{protocol}://{server}/fmi/data/{api_version}/databases/{database}``
        """
        return f"{self.server_url}/databases/{quote(self.database, safe='')}"

    def secrets(self) -> list[str]:
        """Return the raw secret values, for redaction only.

        Returns:
            list[str]: Password or api key.
        """
        if isinstance(self.credentials, UsernamePassword):
            return [self.credentials.password.get_secret_value()]
        return [self.credentials.api_key.get_secret_value()]


class SessionEntry(BaseModel):
    """A live Data API token for one target."""

    model_config = ConfigDict(frozen=True)

    target_id: str
    token: SecretStr
    obtained_at: float = Field(default_factory=time.time)


# ---------------------------------------------------------------------------
# Tool Schemas
# ---------------------------------------------------------------------------


class ToolResult(BaseModel):
    """Structured outcome of a tool call; failures are data, never exceptions.

    Examples:
        >>> ToolResult.fail("Database not found: X").model_dump()
        {'success': False, 'data': None, 'message': None, 'error': 'Database not found: X'}
    """

    success: bool = Field(..., description="True when the operation completed")
    data: Optional[Any] = Field(default=None, description="FileMaker response payload")
    message: Optional[str] = Field(default=None, description="Human readable confirmation")
    error: Optional[str] = Field(default=None, description="Failure reason")

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ToolResult":
        """Build a successful result.

        Args:
            data: Payload returned to the agent.
            message: Optional confirmation text.

        Returns:
            ToolResult: success=True result.
        """
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        """Build a failed result.

        Args:
            error: Failure reason, already scrubbed of secrets.

        Returns:
            ToolResult: success=False result.
        """
        return cls(success=False, error=error)

# -*- coding: utf-8 -*-
"""Location: ./fmgateway/services/errors.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Gateway error taxonomy.

Every failure raised by the session/cache layer derives from ``GatewayError`` so
the tool layer can turn it into a structured result with a single ``except``.
An authorization rejection from the backend is deliberately not an exception:
the request executor models it as a ``CallOutcome`` variant and reclassifies it
as ``RequestFailure`` once the single retry is spent.

Examples:
    >>> from fmgateway.services.errors import AuthenticationError, GatewayError, RequestFailure
    >>> issubclass(AuthenticationError, GatewayError)
    True
    >>> err = RequestFailure("Request failed: Layout is missing", status_code=500)
    >>> (str(err), err.status_code)
    ('Request failed: Layout is missing', 500)
"""

# Standard
from typing import Optional


class GatewayError(Exception):
    """Base class for gateway errors."""


class ConfigurationError(GatewayError):
    """Raised when the gateway cannot start, e.g. no valid FileMaker target was discovered."""


class AuthenticationError(GatewayError):
    """Raised when the backend rejects the credentials or the target is unknown."""


class RequestFailure(GatewayError):
    """Raised for any non-authentication failure talking to the backend.

    Attributes:
        status_code: HTTP status returned by the backend, or None for transport errors and timeouts.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        """Initialize the failure.

        Args:
            message: Human readable description, already scrubbed of secrets.
            status_code: HTTP status code when the backend answered.
        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

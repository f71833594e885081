# src/rtm_client/api/errors.py

"""
RTM error responses.

Remote failures carry RTM's own (positive) error codes.
Failures detected locally use negative codes:

  -1 network      could not reach the API server
  -2 response     response could not be parsed
  -3 reference    a local index did not resolve to a task/list
  -4 auth         user could not be authenticated
  -5 rate limit   server answered 503
  -6 server       server answered another 5xx
"""

from __future__ import annotations

from typing import Any

STATUS_OK = "ok"
STATUS_FAIL = "fail"


class RTMResponse:
    """Base for parsed API responses."""

    def __init__(self, status: str) -> None:
        self._status = status

    @property
    def status(self) -> str:
        return self._status

    @property
    def is_ok(self) -> bool:
        return self._status == STATUS_OK


class RTMError(RTMResponse, Exception):
    """A failed request: the server said 'fail', or it never got that far."""

    NETWORK = -1
    RESPONSE = -2
    REFERENCE = -3
    AUTH = -4
    RATE_LIMIT = -5
    SERVER = -6

    def __init__(self, code: Any, msg: str) -> None:
        RTMResponse.__init__(self, STATUS_FAIL)
        try:
            code = int(code)
        except (TypeError, ValueError):
            pass
        self._code = code
        self._msg = str(msg)
        Exception.__init__(self, self._code, self._msg)

    @property
    def code(self) -> Any:
        return self._code

    @property
    def msg(self) -> str:
        return self._msg

    @property
    def is_local(self) -> bool:
        """True for errors raised by this client rather than by RTM."""
        return isinstance(self._code, int) and self._code < 0

    def __str__(self) -> str:
        return f"ERROR {self._code}: {self._msg}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self._code!r}, msg={self._msg!r})"

    @classmethod
    def network_error(cls) -> RTMError:
        return cls(cls.NETWORK, "Network Error: Could not make request to RTM API Server")

    @classmethod
    def response_error(cls) -> RTMError:
        return cls(cls.RESPONSE, "Response Error: Could not parse the response from the RTM API Server")

    @classmethod
    def auth_error(cls, details: str = "Could not authenticate user") -> RTMError:
        return cls(cls.AUTH, f"Authentication Error: {details}")

    @classmethod
    def rate_limit_error(cls) -> RTMError:
        return cls(cls.RATE_LIMIT, "Rate Limit Error: The RTM API Server is refusing requests, slow down")

    @classmethod
    def server_error(cls) -> RTMError:
        return cls(cls.SERVER, "Server Error: The RTM API Server could not handle the request")

    @classmethod
    def reference_error(cls, reference: Any = None) -> ReferenceNotFoundError:
        return ReferenceNotFoundError(reference)


class ReferenceNotFoundError(RTMError):
    """A local index (or list name) did not resolve, even after a refresh."""

    def __init__(self, reference: Any = None) -> None:
        super().__init__(RTMError.REFERENCE, "Index Error: Could not find item by reference index number")
        self.reference = reference

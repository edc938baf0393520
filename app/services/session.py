"""Per-request authentication context backed by the signed session cookie."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, MutableMapping

from fastapi import Request

SESSION_AUTH_FLAG = "is_user"
SESSION_USERNAME = "user"
SESSION_CUSTOMER_ID = "cust_id"


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Who, if anyone, is making the current request."""

    is_authenticated: bool = False
    username: str = ""
    customer_id: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "isAuthenticated": self.is_authenticated,
            "username": self.username,
            "customerId": self.customer_id,
        }


ANONYMOUS = AuthContext()


class SessionGuard:
    """Reads and writes the authentication triple stored in a session.

    The guard is built once per request at the route boundary; services
    receive the resulting :class:`AuthContext` instead of the session.
    """

    def __init__(self, session: MutableMapping[str, Any]):
        self._session = session

    @classmethod
    def from_request(cls, request: Request) -> "SessionGuard":
        return cls(request.session)

    def establish(self, customer_id: str, username: str) -> AuthContext:
        self._session.update(
            {
                SESSION_AUTH_FLAG: True,
                SESSION_USERNAME: username,
                SESSION_CUSTOMER_ID: customer_id,
            }
        )
        return self.current()

    def current(self) -> AuthContext:
        if self._session.get(SESSION_AUTH_FLAG) is not True:
            return ANONYMOUS
        username = self._session.get(SESSION_USERNAME)
        customer_id = self._session.get(SESSION_CUSTOMER_ID)
        if not (isinstance(username, str) and username):
            return ANONYMOUS
        if not (isinstance(customer_id, str) and customer_id):
            return ANONYMOUS
        return AuthContext(True, username, customer_id)

    def clear(self) -> None:
        self._session.clear()

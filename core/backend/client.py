"""
Backend query client.

Thin wrapper over the hosted backend's REST surface (PostgREST dialect):
table("properties").select("*").eq("id", 7).execute()

Every failure (network or non-2xx) is raised as BackendError so callers
have a single exception type to convert into a notice.
"""

import logging
from typing import Any, Iterable, Optional

import requests


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

REST_PATH = "/rest/v1"
REQUEST_TIMEOUT_SECONDS = 30
USER_AGENT = "AgencyReports/1.0"

# Error code returned when single() matched no rows
NO_ROWS_CODE = "PGRST116"


class BackendError(Exception):
    """A backend request failed."""

    def __init__(self, message: str, code: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status

    @property
    def is_not_found(self) -> bool:
        return self.code == NO_ROWS_CODE

    @classmethod
    def from_response(cls, response: requests.Response) -> "BackendError":
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = (
            body.get("message")
            or body.get("msg")
            or body.get("error_description")
            or body.get("error")
            or f"Backend request failed with status {response.status_code}"
        )
        code = body.get("code") or body.get("error_code")
        return cls(str(message), code=str(code) if code is not None else None, status=response.status_code)


def _literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# =============================================================================
# Query Builder
# =============================================================================


class Query:
    """
    Builder for one table request.

    Filters accumulate; the verb (select / insert / update / delete) is fixed
    by the last verb call and sent by execute().
    """

    def __init__(self, client: "BackendClient", table: str, token: Optional[str] = None):
        self._client = client
        self.table = table
        self.token = token
        self.method = "GET"
        self.params: list[tuple[str, str]] = []
        self.body: Any = None
        self.headers: dict[str, str] = {}
        self._single = False

    # --- Verbs ---

    def select(self, columns: str = "*") -> "Query":
        self.params.append(("select", columns))
        return self

    def insert(self, values: Any) -> "Query":
        self.method = "POST"
        self.body = values
        self.headers["Prefer"] = "return=representation"
        return self

    def update(self, values: dict) -> "Query":
        self.method = "PATCH"
        self.body = values
        self.headers["Prefer"] = "return=representation"
        return self

    def delete(self) -> "Query":
        self.method = "DELETE"
        self.headers["Prefer"] = "return=representation"
        return self

    # --- Filters ---

    def _filter(self, column: str, operator: str, value: Any) -> "Query":
        self.params.append((column, f"{operator}.{_literal(value)}"))
        return self

    def eq(self, column: str, value: Any) -> "Query":
        return self._filter(column, "eq", value)

    def neq(self, column: str, value: Any) -> "Query":
        return self._filter(column, "neq", value)

    def gt(self, column: str, value: Any) -> "Query":
        return self._filter(column, "gt", value)

    def gte(self, column: str, value: Any) -> "Query":
        return self._filter(column, "gte", value)

    def lt(self, column: str, value: Any) -> "Query":
        return self._filter(column, "lt", value)

    def lte(self, column: str, value: Any) -> "Query":
        return self._filter(column, "lte", value)

    def ilike(self, column: str, pattern: str) -> "Query":
        return self._filter(column, "ilike", pattern)

    def in_(self, column: str, values: Iterable[Any]) -> "Query":
        joined = ",".join(_literal(v) for v in values)
        self.params.append((column, f"in.({joined})"))
        return self

    # --- Modifiers ---

    def order(self, column: str, desc: bool = False) -> "Query":
        self.params.append(("order", f"{column}.{'desc' if desc else 'asc'}"))
        return self

    def limit(self, count: int) -> "Query":
        self.params.append(("limit", str(count)))
        return self

    def single(self) -> "Query":
        """Expect exactly one row; execute() returns a dict instead of a list."""
        self._single = True
        self.headers["Accept"] = "application/vnd.pgrst.object+json"
        return self

    def execute(self) -> Any:
        """
        Send the request.

        Returns:
            A list of row dicts, or one dict after single().

        Raises:
            BackendError: On network failure or a non-2xx response.
        """
        data = self._client.request(
            self.method,
            f"{REST_PATH}/{self.table}",
            params=self.params,
            json=self.body,
            headers=self.headers,
            token=self.token,
        )
        if data is None:
            return {} if self._single else []
        return data


# =============================================================================
# Client
# =============================================================================


class BackendClient:
    """Session-holding client for the backend's REST and auth surfaces."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": USER_AGENT,
            "apikey": api_key,
            "Content-Type": "application/json",
        })

    def table(self, name: str, token: Optional[str] = None) -> Query:
        """Start a query; token makes it run as that signed-in user."""
        return Query(self, name, token=token)

    def request(
        self,
        method: str,
        path: str,
        params: Optional[list[tuple[str, str]]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
        token: Optional[str] = None,
    ) -> Any:
        """
        Send one request and decode the JSON body.

        Raises:
            BackendError: On network failure or a non-2xx response.
        """
        request_headers = {"Authorization": f"Bearer {token or self.api_key}"}
        request_headers.update(headers or {})
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=request_headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Backend request %s %s failed: %s", method, path, e)
            raise BackendError(f"Network error: {e}") from e

        if not response.ok:
            error = BackendError.from_response(response)
            logger.warning(
                "Backend request %s %s returned %s: %s",
                method, path, response.status_code, error.message,
            )
            raise error

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendError("Backend returned invalid JSON", status=response.status_code) from e

    def close(self) -> None:
        """Close the session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

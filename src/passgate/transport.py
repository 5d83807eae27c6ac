"""HTTPS transport for login endpoints.

Every call is a blocking form-encoded POST to ``https://<server>/<path>``.
Failures of any kind (connection errors, TLS errors, non-2xx responses)
are logged and reported as ``None`` so the login state machine can treat
them uniformly as "no response obtained".
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import requests

from passgate.config import get_settings
from passgate.logging import get_logger

if TYPE_CHECKING:
    from passgate.config import PassgateSettings
    from passgate.form import FormParameterSet
    from passgate.protocol import Session

LOG = get_logger(__name__)

SESSION_COOKIE = "PHPSESSID"


class Transport(Protocol):
    def post(
        self,
        server: str,
        path: str,
        fields: FormParameterSet | dict[str, str],
        session: Session | None = None,
    ) -> str | None: ...


class HttpTransport:
    """Form POST client backed by a ``requests.Session``.

    Usable as a context manager to close pooled connections on exit.
    """

    def __init__(
        self,
        settings: PassgateSettings | None = None,
        http: requests.Session | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.http = http or requests.Session()
        self.http.headers["User-Agent"] = self.settings.user_agent

    def __enter__(self) -> HttpTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.http.close()

    def post(
        self,
        server: str,
        path: str,
        fields: FormParameterSet | dict[str, str],
        session: Session | None = None,
    ) -> str | None:
        """POST ``fields`` and return the response body.

        Args:
            server: Host name, without scheme.
            path: Endpoint path relative to the host root (e.g. ``login.php``).
            fields: Form fields, sent in iteration order.
            session: Authenticated session whose cookie is attached, if any.

        Returns:
            Response text, or None if no usable response was obtained.
        """
        url = f"https://{server}/{path.lstrip('/')}"
        data = list(fields.items())
        cookies = {SESSION_COOKIE: session.sessionid} if session is not None else None

        try:
            resp = self.http.post(
                url,
                data=data,
                cookies=cookies,
                timeout=self.settings.http_timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            LOG.warning(
                "http_post_failed",
                url=url,
                error=str(exc),
                exc_type=type(exc).__name__,
            )
            return None

        LOG.debug("http_post_ok", url=url, status=resp.status_code, length=len(resp.text))
        return resp.text

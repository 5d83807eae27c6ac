"""Tests for the HTTPS login transport."""

from unittest.mock import MagicMock

import pytest
import requests

from passgate.config import PassgateSettings
from passgate.form import FormParameterSet
from passgate.protocol import Session
from passgate.transport import SESSION_COOKIE, HttpTransport


@pytest.fixture
def http() -> MagicMock:
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    response = MagicMock()
    response.text = "<response><ok/></response>"
    response.status_code = 200
    session.post.return_value = response
    return session


class TestHttpTransport:
    """Tests for HttpTransport.post."""

    def test_posts_form_fields_in_order(self, http, settings) -> None:
        """Test URL, body order and return value of a plain login post."""
        transport = HttpTransport(settings, http=http)
        fields = FormParameterSet([("xml", "2"), ("username", "alice"), ("hash", "abc")])

        body = transport.post("lastpass.com", "login.php", fields)

        assert body == "<response><ok/></response>"
        http.post.assert_called_once_with(
            "https://lastpass.com/login.php",
            data=[("xml", "2"), ("username", "alice"), ("hash", "abc")],
            cookies=None,
            timeout=None,
        )

    def test_leading_slash_in_path(self, http, settings) -> None:
        HttpTransport(settings, http=http).post("lastpass.eu", "/trust.php", {"a": "1"})
        assert http.post.call_args.args[0] == "https://lastpass.eu/trust.php"

    def test_session_cookie_attached(self, http, settings) -> None:
        """Test that an authenticated post carries the session cookie."""
        session = Session(uid="1", sessionid="sess-42", token="tok")
        HttpTransport(settings, http=http).post("lastpass.com", "trust.php", {}, session=session)
        assert http.post.call_args.kwargs["cookies"] == {SESSION_COOKIE: "sess-42"}

    def test_user_agent_and_timeout_from_settings(self, http, isolated_config) -> None:
        settings = PassgateSettings(
            config_dir=isolated_config, user_agent="passgate-test/1", http_timeout=5.0
        )
        HttpTransport(settings, http=http).post("lastpass.com", "login.php", {})
        assert http.headers["User-Agent"] == "passgate-test/1"
        assert http.post.call_args.kwargs["timeout"] == 5.0

    @pytest.mark.parametrize(
        "exc",
        [
            requests.ConnectionError("refused"),
            requests.Timeout("slow"),
            requests.exceptions.SSLError("bad cert"),
        ],
    )
    def test_request_errors_return_none(self, http, settings, exc) -> None:
        http.post.side_effect = exc
        assert HttpTransport(settings, http=http).post("lastpass.com", "login.php", {}) is None

    def test_http_error_status_returns_none(self, http, settings) -> None:
        """Test that a non-2xx response counts as no response."""
        http.post.return_value.raise_for_status.side_effect = requests.HTTPError("503")
        assert HttpTransport(settings, http=http).post("lastpass.com", "login.php", {}) is None

    def test_context_manager_closes_session(self, http, settings) -> None:
        with HttpTransport(settings, http=http) as transport:
            assert transport.http is http
        http.close.assert_called_once()

    def test_default_session_and_settings(self) -> None:
        transport = HttpTransport()
        try:
            assert isinstance(transport.http, requests.Session)
            assert transport.http.headers["User-Agent"].startswith("passgate/")
        finally:
            transport.close()

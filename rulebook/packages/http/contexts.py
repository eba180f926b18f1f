"""Context providers built from a WSGI environ."""

from __future__ import annotations

from collections.abc import Mapping
from http.cookies import CookieError, SimpleCookie
from typing import Any
from urllib.parse import parse_qs, urlsplit

from rulebook.context import ContextProvider
from rulebook.core.logging import get_logger

logger = get_logger(__name__)

_IP_KEYS = (
    "HTTP_CF_CONNECTING_IP",
    "HTTP_X_FORWARDED_FOR",
    "HTTP_X_REAL_IP",
    "REMOTE_ADDR",
)


def _environ_str(environ: Mapping[str, Any], key: str, default: str = "") -> str:
    value = environ.get(key, default)
    return value if isinstance(value, str) else default


def parse_headers(environ: Mapping[str, Any]) -> dict[str, str]:
    """Request headers from environ HTTP_* keys, names lower-cased and dashed."""
    headers = {}
    for key, value in environ.items():
        if not isinstance(value, str):
            continue
        if key.startswith("HTTP_"):
            headers[key[5:].replace("_", "-").lower()] = value
        elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
            headers[key.replace("_", "-").lower()] = value
    return headers


def parse_cookies(environ: Mapping[str, Any]) -> dict[str, str]:
    header = _environ_str(environ, "HTTP_COOKIE")
    if not header:
        return {}
    jar: SimpleCookie = SimpleCookie()
    try:
        jar.load(header)
    except CookieError as exc:
        logger.warning("cookie_header_invalid", error=str(exc))
        return {}
    return {name: morsel.value for name, morsel in jar.items()}


def parse_params(environ: Mapping[str, Any]) -> dict[str, str]:
    """Query parameters; the last value wins for repeated names."""
    query = _environ_str(environ, "QUERY_STRING")
    parsed = parse_qs(query, keep_blank_values=True)
    return {name: values[-1] for name, values in parsed.items()}


def client_ip(environ: Mapping[str, Any]) -> str:
    """First address from proxy headers, falling back to REMOTE_ADDR."""
    for key in _IP_KEYS:
        value = _environ_str(environ, key).strip()
        if value:
            return value.split(",")[0].strip()
    return ""


class RequestContext(ContextProvider):
    key = "request"

    def __init__(self, environ: Mapping[str, Any]):
        self.environ = environ

    def build(self) -> dict[str, Any]:
        environ = self.environ
        uri = _environ_str(environ, "REQUEST_URI")
        if not uri:
            uri = _environ_str(environ, "PATH_INFO")
            query = _environ_str(environ, "QUERY_STRING")
            if query:
                uri = f"{uri}?{query}"

        if _environ_str(environ, "HTTPS").lower() == "on":
            scheme = "https"
        else:
            scheme = _environ_str(environ, "wsgi.url_scheme", "http") or "http"

        return {
            "request": {
                "method": _environ_str(environ, "REQUEST_METHOD", "GET").upper(),
                "uri": uri,
                "scheme": scheme,
                "host": _environ_str(environ, "HTTP_HOST") or _environ_str(environ, "SERVER_NAME"),
                "path": urlsplit(uri).path if uri else "",
                "query": _environ_str(environ, "QUERY_STRING"),
                "referer": _environ_str(environ, "HTTP_REFERER"),
                "user_agent": _environ_str(environ, "HTTP_USER_AGENT"),
                "headers": parse_headers(environ),
                "ip": client_ip(environ),
            }
        }


class CookieContext(ContextProvider):
    key = "cookie"

    def __init__(self, environ: Mapping[str, Any], cookies: Mapping[str, Any] | None = None):
        self.environ = environ
        self.cookies = cookies

    def build(self) -> dict[str, Any]:
        cookies = self.cookies if self.cookies is not None else parse_cookies(self.environ)
        return {"cookie": dict(cookies)}


class ParamContext(ContextProvider):
    key = "param"

    def __init__(self, environ: Mapping[str, Any], params: Mapping[str, Any] | None = None):
        self.environ = environ
        self.params = params

    def build(self) -> dict[str, Any]:
        params = self.params if self.params is not None else parse_params(self.environ)
        return {"param": dict(params)}

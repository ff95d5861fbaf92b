from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any

from werkzeug.datastructures import MultiDict
from werkzeug.test import Client, encode_multipart

logger = logging.getLogger(__name__)


class ApiRequestError(RuntimeError):
    """The request never produced an HTTP response (connection refused, DNS, timeout...)."""


@dataclass(frozen=True)
class ApiResponse:
    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @classmethod
    def from_bytes(cls, status: int, raw: bytes) -> "ApiResponse":
        if not raw:
            return cls(status=status, body=None)
        try:
            return cls(status=status, body=json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return cls(status=status, body=None)

    def error_message(self, fallback: str) -> str:
        if isinstance(self.body, dict):
            msg = self.body.get("error") or self.body.get("message")
            if msg:
                return str(msg)
        return fallback

    @property
    def data(self) -> Any:
        if isinstance(self.body, dict):
            return self.body.get("data")
        return None


class Transport:
    def send(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str],
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        form: MultiDict | None = None,
    ) -> ApiResponse:
        raise NotImplementedError


@dataclass(frozen=True)
class HttpTransport(Transport):
    base_url: str
    timeout_seconds: int = 30

    def send(self, method, path, *, headers, params=None, json_body=None, form=None) -> ApiResponse:
        url = self.base_url.rstrip("/") + path
        if params:
            url += ("&" if "?" in url else "?") + urllib.parse.urlencode(params, doseq=True)

        data: bytes | None = None
        headers = dict(headers)
        if json_body is not None:
            data = json.dumps(json_body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        elif form is not None:
            boundary, data = encode_multipart(form)
            headers["Content-Type"] = f'multipart/form-data; boundary="{boundary}"'

        req = urllib.request.Request(url, data=data, method=method, headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                return ApiResponse.from_bytes(resp.status, resp.read())
        except urllib.error.HTTPError as e:
            try:
                raw = e.read()
            except OSError:
                raw = b""
            return ApiResponse.from_bytes(e.code, raw)
        except (urllib.error.URLError, OSError) as e:
            raise ApiRequestError(f"{method} {path} failed: {e}") from e


@dataclass(frozen=True)
class WsgiTransport(Transport):
    """Dispatches straight into a WSGI app (the bundled API) without a network hop."""

    app: Any

    def send(self, method, path, *, headers, params=None, json_body=None, form=None) -> ApiResponse:
        client = Client(self.app, use_cookies=False)
        kwargs: dict[str, Any] = {"method": method, "headers": headers}
        if params:
            kwargs["query_string"] = params
        if json_body is not None:
            kwargs["json"] = json_body
        elif form is not None:
            kwargs["data"] = form
            kwargs["content_type"] = "multipart/form-data"
        resp = client.open(path, **kwargs)
        try:
            return ApiResponse.from_bytes(resp.status_code, resp.get_data())
        finally:
            resp.close()


class ApiClient:
    def __init__(self, transport: Transport, token: str | None = None):
        self.transport = transport
        self.token = token

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        form: MultiDict | None = None,
    ) -> ApiResponse:
        h = {"Accept": "application/json"}
        if self.token:
            h["Authorization"] = f"Bearer {self.token}"
        for k, v in (headers or {}).items():
            if v is not None:
                h[k] = str(v)
        resp = self.transport.send(method, path, headers=h, params=params, json_body=json_body, form=form)
        logger.debug("%s %s -> %s", method, path, resp.status)
        return resp

    def get(self, path: str, **kwargs: Any) -> ApiResponse:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> ApiResponse:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> ApiResponse:
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> ApiResponse:
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> ApiResponse:
        return self.request("DELETE", path, **kwargs)


def client_for_app(app: Any, token: str | None = None) -> ApiClient:
    """API_BASE_URL set → talk HTTP to a remote backend; otherwise call the bundled API in-process."""
    base_url = (app.config.get("API_BASE_URL") or "").strip()
    if base_url:
        transport: Transport = HttpTransport(base_url, int(app.config.get("API_TIMEOUT_SECONDS") or 30))
    else:
        transport = WsgiTransport(app)
    return ApiClient(transport, token=token)

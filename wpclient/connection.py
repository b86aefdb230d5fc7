"""HTTP transport for the WordPress REST API.

One :class:`Connection` owns one :class:`requests.Session`; it knows how to
issue the handful of request shapes the API needs and hands every response
to :mod:`wpclient.response` for translation.
"""
from __future__ import annotations

import json
import logging
from typing import IO, Any, Dict, List, Optional, Type

import requests
from requests.auth import HTTPBasicAuth

from .errors import RequestTimeoutError, ServerError
from .response import check_status, translate

logger = logging.getLogger(__name__)

API_PREFIX = "/wp-json/wp/v2"
DEFAULT_TIMEOUT = 15


def encode_params(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Flatten query parameters the way WordPress reads them.

    Nested mappings become ``key[sub]`` entries, booleans are lowercased and
    ``None`` values are left out.
    """
    encoded: Dict[str, str] = {}

    def add(key: str, value: Any) -> None:
        if value is None:
            return
        if isinstance(value, dict):
            for sub, item in value.items():
                add(f"{key}[{sub}]", item)
        elif isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)

    for key, value in (params or {}).items():
        add(key, value)
    return encoded


class Connection:
    """Authenticated access to ``<site>/wp-json/wp/v2``."""

    def __init__(
        self,
        url: str,
        username: str,
        password: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.url = url.rstrip('/')
        self.base = self.url + API_PREFIX
        self.username = username
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.auth = HTTPBasicAuth(username, password)

    def __repr__(self) -> str:
        return f"<Connection {self.username} @ {self.url}>"

    def close(self) -> None:
        self.session.close()

    # Low level -------------------------------------------------------------
    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Any = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        url = self._url(path)
        headers = dict(headers or {})
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json; charset=utf-8"

        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self.session.request(
                method,
                url,
                params=encode_params(params),
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as exc:
            raise RequestTimeoutError(f"{method} {url} timed out after {self.timeout}s") from exc
        except requests.exceptions.RequestException as exc:
            raise ServerError(f"{method} {url} failed: {exc}") from exc
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response

    def _json(self, response: requests.Response) -> Any:
        return translate(response.status_code, response.headers, response.content)

    def _expect_created(self, response: requests.Response) -> None:
        if response.status_code == 201:
            return
        check_status(response.status_code, response.content)
        # Successful, but not 201.
        raise ServerError(
            f"Got unexpected response from server: {response.status_code}",
            status_code=response.status_code,
        )

    def _follow_location(self, model: Type, response: requests.Response, params: Optional[Dict[str, Any]]):
        self._expect_created(response)
        location = response.headers.get("Location")
        if not location:
            raise ServerError("Server did not return the location of the created resource", status_code=201)
        return self.get(model, location, **(params or {}))

    # Request shapes --------------------------------------------------------
    def get(self, model: Type, path: str, **params: Any):
        return model.parse(self._json(self._request("GET", path, params=params)))

    def get_multiple(self, model: Type, path: str, **params: Any) -> List[Any]:
        data = self._json(self._request("GET", path, params=params))
        if not isinstance(data, list):
            raise ServerError(f"Expected a list from {path}, got {type(data).__name__}")
        return [model.parse(item) for item in data]

    def create(
        self,
        model: Type,
        path: str,
        attributes: Dict[str, Any],
        redirect_params: Optional[Dict[str, Any]] = None,
    ):
        """POST ``attributes`` and fetch the created resource from ``Location``."""
        response = self._request("POST", path, payload=attributes)
        return self._follow_location(model, response, redirect_params)

    def create_without_response(self, path: str, attributes: Dict[str, Any]) -> bool:
        self._expect_created(self._request("POST", path, payload=attributes))
        return True

    def patch(self, model: Type, path: str, attributes: Dict[str, Any], **params: Any):
        response = self._request("PATCH", path, params=params, payload=attributes)
        return model.parse(self._json(response))

    def patch_without_response(self, path: str, attributes: Dict[str, Any]) -> bool:
        response = self._request("PATCH", path, payload=attributes)
        check_status(response.status_code, response.content)
        return True

    def delete(self, path: str, params: Optional[Dict[str, Any]] = None) -> bool:
        response = self._request("DELETE", path, params=params)
        check_status(response.status_code, response.content)
        return True

    def upload(self, model: Type, path: str, io: IO[bytes], mime_type: str, filename: str):
        headers = {
            "Content-Type": mime_type,
            "Content-Disposition": f'attachment; filename="{filename}"',
        }
        response = self._request("POST", path, data=io, headers=headers)
        return self._follow_location(model, response, None)

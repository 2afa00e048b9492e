"""Bearer-authenticated HTTP access to the Vimeo API.

All network traffic of the package goes through :class:`VimeoTransport`, which
is constructed explicitly and passed to the services that need it.
"""

from typing import Any, Dict, Iterable, Optional, Protocol

import requests

from .exceptions import VimeoApiError

ACCEPT_HEADER = 'application/vnd.vimeo.*+json;version=3.4'

TRANSIENT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


class TokenProvider(Protocol):
    def get_bearer_token(self) -> str: ...


class StaticTokenProvider:
    def __init__(self, token: str):
        if not token:
            raise ValueError('An access token is required')
        self._token = token

    def get_bearer_token(self) -> str:
        return self._token


def _error_payload(resp: requests.Response) -> Dict[str, Any]:
    try:
        payload = resp.json()
    except ValueError:
        return {'error': (resp.text or resp.reason or '').strip()[:500]}
    if not isinstance(payload, dict):
        return {'error': str(payload)[:500]}
    return payload


def raise_for_response(resp: requests.Response) -> None:
    payload = _error_payload(resp)
    message = payload.get('error') or payload.get('developer_message') or f"Unexpected status {resp.status_code}"
    raise VimeoApiError(resp.status_code, str(message), error_code=payload.get('error_code'))


class VimeoTransport:
    def __init__(
        self,
        token_provider: TokenProvider,
        api_url: str = 'https://api.vimeo.com',
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.token_provider = token_provider
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def url_for(self, path_or_url: str) -> str:
        if path_or_url.startswith(('http://', 'https://')):
            return path_or_url
        return f"{self.api_url}/{path_or_url.lstrip('/')}"

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            'Authorization': f"Bearer {self.token_provider.get_bearer_token()}",
            'Accept': ACCEPT_HEADER,
        }
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path_or_url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        expected: Iterable[int] = (200, 201, 204),
    ) -> requests.Response:
        """Send one request and return the response if its status is expected.

        Raises VimeoApiError on any other status; connection failures and
        timeouts are reported as retryable VimeoApiError without a status.
        """
        url = self.url_for(path_or_url)
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json,
                data=data,
                headers=self._headers(headers),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            transient = isinstance(exc, TRANSIENT_ERRORS)
            raise VimeoApiError(None, f"{method} {url} failed: {exc}", retryable=transient) from exc
        if resp.status_code not in tuple(expected):
            raise_for_response(resp)
        return resp

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request('GET', path, params=params, expected=(200,)).json()

    def patch_json(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request('PATCH', path, json=payload, expected=(200,)).json()

    def delete(self, path: str) -> None:
        self.request('DELETE', path, expected=(200, 204))

    def close(self) -> None:
        self.session.close()

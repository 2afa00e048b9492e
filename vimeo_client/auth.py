"""Access tokens for the Vimeo API.

Vimeo speaks plain OAuth 2: a client-credentials grant yields an
"unauthenticated" token for public data, and the authorization-code grant
yields a token acting on behalf of a user. The code grant reuses
google-auth-oauthlib's generic ``Flow`` with Vimeo's endpoints.
"""

import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple
from urllib.parse import urlparse

import requests
from google_auth_oauthlib.flow import Flow, InstalledAppFlow

from utils.io import load_access_token, save_access_token
from utils.logs import log

from .exceptions import VimeoApiError
from .transport import ACCEPT_HEADER, raise_for_response

DEFAULT_SCOPES = ['public', 'private', 'upload', 'edit', 'delete']
RELAX_SCOPE_ENV = 'OAUTHLIB_RELAX_TOKEN_SCOPE'


@contextmanager
def relaxed_token_scope(enabled: bool) -> Iterator[None]:
    """Let oauthlib accept a token whose scope differs from the one requested.

    oauthlib only reads this switch from the environment, so it is set for the
    duration of one token exchange and the previous value is restored after.
    """
    if not enabled:
        yield
        return
    previous = os.environ.get(RELAX_SCOPE_ENV)
    os.environ[RELAX_SCOPE_ENV] = '1'
    try:
        yield
    finally:
        if previous is None:
            os.environ.pop(RELAX_SCOPE_ENV, None)
        else:
            os.environ[RELAX_SCOPE_ENV] = previous


def local_server_address(redirect_uri: str) -> Tuple[str, int]:
    """Host and port the consent redirect should be served on."""
    parsed = urlparse(redirect_uri)
    if parsed.scheme not in ('http', 'https') or not parsed.hostname:
        raise ValueError(f"Redirect URI must be an http(s) URL with a host: {redirect_uri!r}")
    port = parsed.port or (443 if parsed.scheme == 'https' else 80)
    return parsed.hostname, port


class FileTokenProvider:
    """Bearer token persisted by a previous authorization-code exchange."""

    def __init__(self, token_path: str):
        self.token_path = token_path

    def get_bearer_token(self) -> str:
        token = load_access_token(self.token_path)
        if not token:
            raise FileNotFoundError(f"No Vimeo access token stored at {self.token_path}")
        return token


class AuthorizationClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        api_url: str = 'https://api.vimeo.com',
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        relax_scope: bool = False,
    ):
        if not client_id or not client_secret:
            raise ValueError('client_id and client_secret are required')
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.relax_scope = relax_scope

    def client_config(self) -> Dict[str, Any]:
        return {
            'installed': {
                'client_id': self.client_id,
                'client_secret': self.client_secret,
                'auth_uri': f"{self.api_url}/oauth/authorize",
                'token_uri': f"{self.api_url}/oauth/access_token",
            }
        }

    def get_unauthenticated_token(self, scopes: Optional[List[str]] = None) -> Dict[str, Any]:
        try:
            resp = self.session.post(
                f"{self.api_url}/oauth/authorize/client",
                data={'grant_type': 'client_credentials', 'scope': ' '.join(scopes or ['public'])},
                auth=(self.client_id, self.client_secret),
                headers={'Accept': ACCEPT_HEADER},
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise VimeoApiError(None, f"Token request failed: {exc}", retryable=True) from exc
        if resp.status_code != 200:
            raise_for_response(resp)
        return resp.json()

    def build_flow(self, redirect_uri: str, scopes: Optional[List[str]] = None) -> Flow:
        return Flow.from_client_config(self.client_config(), scopes=scopes or DEFAULT_SCOPES, redirect_uri=redirect_uri)

    def get_authorization_url(self, redirect_uri: str, scopes: Optional[List[str]] = None, state: Optional[str] = None) -> Tuple[str, str]:
        flow = self.build_flow(redirect_uri, scopes)
        return flow.authorization_url(state=state)

    def exchange_code(self, code: str, redirect_uri: str, scopes: Optional[List[str]] = None) -> Dict[str, Any]:
        flow = self.build_flow(redirect_uri, scopes)
        with relaxed_token_scope(self.relax_scope):
            return dict(flow.fetch_token(code=code))

    def authorize_installed_app(
        self, token_path: str, scopes: Optional[List[str]] = None, redirect_uri: str = 'http://localhost:8765/'
    ) -> str:
        """Run the browser consent flow on a local redirect and persist the token."""
        host, port = local_server_address(redirect_uri)
        flow = InstalledAppFlow.from_client_config(self.client_config(), scopes=scopes or DEFAULT_SCOPES)
        with relaxed_token_scope(self.relax_scope):
            flow.run_local_server(host=host, port=port)
        token = dict(flow.oauth2session.token)
        save_access_token(token_path, token)
        log(f"Stored Vimeo access token at {token_path}")
        return token['access_token']

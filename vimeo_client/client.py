from typing import Any, Dict, Iterable, Optional

import requests

from config import DEFAULT_CHUNK_SIZE
from utils.logs import warn

from .binary_content import BinaryContent
from .exceptions import VimeoApiError
from .models import CompletedRequest, EditUserParameters, UploadTicket
from .orchestrator import ProgressCallback, RetryPolicy, UploadOrchestrator
from .transport import StaticTokenProvider, TokenProvider, VimeoTransport


def _query(page: Optional[int] = None, per_page: Optional[int] = None, fields: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if page is not None:
        params['page'] = page
    if per_page is not None:
        params['per_page'] = per_page
    if fields:
        params['fields'] = ','.join(fields)
    return params


class VimeoClient:
    def __init__(
        self,
        access_token: Optional[str] = None,
        *,
        token_provider: Optional[TokenProvider] = None,
        api_url: str = 'https://api.vimeo.com',
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        retry_policy: Optional[RetryPolicy] = None,
        transport: Optional[VimeoTransport] = None,
    ):
        if transport is None:
            if token_provider is None:
                token_provider = StaticTokenProvider(access_token or '')
            transport = VimeoTransport(token_provider, api_url=api_url, timeout=timeout, session=session)
        self.transport = transport
        self.chunk_size = chunk_size
        self.retry_policy = retry_policy or RetryPolicy()

    @classmethod
    def from_config(cls, cfg, token_provider: Optional[TokenProvider] = None) -> 'VimeoClient':
        return cls(
            cfg.access_token,
            token_provider=token_provider,
            api_url=cfg.api_url,
            timeout=cfg.http_timeout_sec,
            chunk_size=cfg.chunk_size,
            retry_policy=RetryPolicy(
                max_retries=cfg.max_retries,
                backoff_sec=cfg.backoff_sec,
                backoff_max_sec=cfg.backoff_max_sec,
            ),
        )

    # uploads

    def new_orchestrator(self) -> UploadOrchestrator:
        return UploadOrchestrator.from_transport(self.transport, chunk_size=self.chunk_size, retry_policy=self.retry_policy)

    def upload_entire_file(self, content: BinaryContent, on_progress: Optional[ProgressCallback] = None) -> CompletedRequest:
        return self.new_orchestrator().upload_entire_content(content, on_progress=on_progress)

    def resume_upload(self, content: BinaryContent, ticket: UploadTicket, on_progress: Optional[ProgressCallback] = None) -> CompletedRequest:
        return self.new_orchestrator().resume(content, ticket, on_progress=on_progress)

    # metadata

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        attempt = 0
        while True:
            try:
                return self.transport.get_json(path, params=params)
            except VimeoApiError as exc:
                attempt += 1
                if not exc.retryable or attempt > self.retry_policy.max_retries:
                    raise
                warn(f"GET {path} failed ({exc}); retry {attempt}")
                self.retry_policy.wait(attempt)

    def _get_or_none(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        try:
            return self._get(path, params)
        except VimeoApiError as exc:
            if exc.status_code == 404:
                return None
            raise

    def get_account_information(self) -> Dict[str, Any]:
        return self._get('/me')

    def update_account_information(self, params: EditUserParameters) -> Dict[str, Any]:
        return self.transport.patch_json('/me', params.to_payload())

    def get_user_information(self, user_id: int) -> Dict[str, Any]:
        return self._get(f"/users/{user_id}")

    def get_user_videos(self, user_id: int, page: Optional[int] = None, per_page: Optional[int] = None) -> Dict[str, Any]:
        return self._get(f"/users/{user_id}/videos", _query(page, per_page))

    def get_videos(self, page: Optional[int] = None, per_page: Optional[int] = None) -> Dict[str, Any]:
        return self._get('/me/videos', _query(page, per_page))

    def get_video(self, video_id: int, fields: Optional[Iterable[str]] = None) -> Optional[Dict[str, Any]]:
        return self._get_or_none(f"/videos/{video_id}", _query(fields=fields))

    def update_video_metadata(self, video_id: int, name: Optional[str] = None, description: Optional[str] = None) -> Dict[str, Any]:
        payload = {k: v for k, v in (('name', name), ('description', description)) if v is not None}
        return self.transport.patch_json(f"/videos/{video_id}", payload)

    def delete_video(self, video_id: int) -> None:
        self.transport.delete(f"/videos/{video_id}")

    def get_album_videos(self, album_id: int, page: Optional[int] = None, per_page: Optional[int] = None, fields: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        return self._get(f"/me/albums/{album_id}/videos", _query(page, per_page, fields))

    def get_album_video(self, album_id: int, video_id: int, fields: Optional[Iterable[str]] = None) -> Optional[Dict[str, Any]]:
        return self._get_or_none(f"/me/albums/{album_id}/videos/{video_id}", _query(fields=fields))

    def get_user_album_videos(self, user_id: int, album_id: int, fields: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        return self._get(f"/users/{user_id}/albums/{album_id}/videos", _query(fields=fields))

    def get_user_album_video(self, user_id: int, album_id: int, video_id: int, fields: Optional[Iterable[str]] = None) -> Optional[Dict[str, Any]]:
        return self._get_or_none(f"/users/{user_id}/albums/{album_id}/videos/{video_id}", _query(fields=fields))

    def get_pictures(self, video_id: int) -> Dict[str, Any]:
        return self._get(f"/videos/{video_id}/pictures")

    def get_picture(self, video_id: int, picture_id: int) -> Optional[Dict[str, Any]]:
        return self._get_or_none(f"/videos/{video_id}/pictures/{picture_id}")

    def close(self) -> None:
        self.transport.close()

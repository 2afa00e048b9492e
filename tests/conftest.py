import json
import re
from typing import Any, Dict, List, Optional

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from vimeo_client.orchestrator import RetryPolicy


def make_response(status: int, payload: Any = None, headers: Optional[Dict[str, str]] = None, url: str = 'https://api.vimeo.test/') -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.url = url
    resp.headers = CaseInsensitiveDict(headers or {})
    resp._content = b'' if payload is None else json.dumps(payload).encode('utf-8')
    return resp


class FakeSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs):
        self.calls.append({'method': method, 'url': url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def post(self, url: str, **kwargs):
        return self.request('POST', url, **kwargs)

    def close(self) -> None:
        self.closed = True


_CONTENT_RANGE = re.compile(r'bytes (\d+)-(\d+)/(\d+)')


class FakeVimeoApi:
    """Minimal in-memory stand-in for the Vimeo streaming upload API."""

    def __init__(self, api_url: str = 'https://api.vimeo.test') -> None:
        self.api_url = api_url
        self.upload_url = 'https://upload.vimeo.test/upload?ticket_id=abc'
        self.received = bytearray()
        self.videos: Dict[int, Dict[str, Any]] = {}
        self.calls: List[Dict[str, Any]] = []
        self.next_clip_id = 4242

    def request(self, method: str, url: str, **kwargs):
        self.calls.append({'method': method, 'url': url, **kwargs})
        headers = kwargs.get('headers') or {}
        if method == 'POST' and url == f"{self.api_url}/me/videos":
            return make_response(201, {
                'uri': '/users/1/tickets/abc',
                'ticket_id': 'abc',
                'upload_link_secure': self.upload_url,
                'complete_uri': '/users/1/uploads/abc',
            })
        if method == 'PUT' and url == self.upload_url:
            if headers.get('Content-Range') == 'bytes */*':
                if not self.received:
                    return make_response(308)
                return make_response(308, headers={'Range': f"bytes=0-{len(self.received) - 1}"})
            start, _, _ = (int(g) for g in _CONTENT_RANGE.match(headers['Content-Range']).groups())
            data = kwargs['data']
            if start <= len(self.received):
                self.received[start:start + len(data)] = data
            return make_response(308)
        if method == 'DELETE' and url == f"{self.api_url}/users/1/uploads/abc":
            clip_id = self.next_clip_id
            self.videos[clip_id] = {'uri': f"/videos/{clip_id}", 'name': 'Untitled'}
            return make_response(201, headers={'Location': f"/videos/{clip_id}"})
        match = re.fullmatch(rf"{re.escape(self.api_url)}/videos/(\d+)", url)
        if match:
            clip_id = int(match.group(1))
            if clip_id not in self.videos:
                return make_response(404, {'error': 'The requested video could not be found'})
            if method == 'GET':
                return make_response(200, self.videos[clip_id])
            if method == 'PATCH':
                self.videos[clip_id].update(kwargs.get('json') or {})
                return make_response(200, self.videos[clip_id])
            if method == 'DELETE':
                del self.videos[clip_id]
                return make_response(204)
        return make_response(404, {'error': f"No route for {method} {url}"})

    def close(self) -> None:
        pass


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def retry_policy(sleeps) -> RetryPolicy:
    return RetryPolicy(max_retries=3, backoff_sec=1, backoff_max_sec=4, sleep=sleeps.append)


@pytest.fixture
def fake_api() -> FakeVimeoApi:
    return FakeVimeoApi()

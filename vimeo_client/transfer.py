from utils.logs import debug

from .exceptions import TransferError, VimeoApiError
from .models import UploadTicket
from .transport import VimeoTransport

# 308 is "Resume Incomplete" on the streaming upload link.
ACCEPTED_STATUSES = (200, 201, 204, 308)


def content_range(offset: int, size: int, total: int) -> str:
    return f"bytes {offset}-{offset + size - 1}/{total}"


class ChunkTransferEngine:
    """Single range-bounded PUT of content to a ticket's upload link. Never retries."""

    def __init__(self, transport: VimeoTransport):
        self.transport = transport

    def send_chunk(self, ticket: UploadTicket, offset: int, data: bytes, total_length: int, content_type: str) -> int:
        if not data:
            raise ValueError('Refusing to send an empty chunk')
        headers = {
            'Content-Type': content_type,
            'Content-Range': content_range(offset, len(data), total_length),
        }
        try:
            resp = self.transport.request('PUT', ticket.upload_uri, data=data, headers=headers, expected=ACCEPTED_STATUSES)
        except VimeoApiError as exc:
            raise TransferError(
                f"Chunk at {offset} ({len(data)} bytes) failed: {exc}",
                retryable=exc.retryable,
                status_code=exc.status_code,
            ) from exc
        debug(f"Sent {headers['Content-Range']} -> {resp.status_code}")
        return resp.status_code

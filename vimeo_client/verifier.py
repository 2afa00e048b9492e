import re
from typing import Optional

from .exceptions import VerificationError, VimeoApiError
from .models import UploadProgress, UploadTicket
from .transport import VimeoTransport

_RANGE_RE = re.compile(r'^\s*bytes[=\s]\s*(\d+)\s*-\s*(\d+)')

# Ticket unknown or expired; the upload cannot continue on it.
TICKET_GONE_STATUSES = (404, 410)


def parse_received_range(header: Optional[str]) -> int:
    """Bytes held by the server according to a ``Range: bytes=0-N`` header."""
    if not header:
        return 0
    match = _RANGE_RE.match(header)
    if not match:
        raise ValueError(f"Unparseable Range header: {header!r}")
    return int(match.group(2)) + 1


class ProgressVerifier:
    def __init__(self, transport: VimeoTransport):
        self.transport = transport

    def query_bytes_received(self, ticket: UploadTicket) -> UploadProgress:
        headers = {'Content-Range': 'bytes */*', 'Content-Length': '0'}
        try:
            resp = self.transport.request('PUT', ticket.upload_uri, data=b'', headers=headers, expected=(200, 201, 308))
        except VimeoApiError as exc:
            gone = exc.status_code in TICKET_GONE_STATUSES
            raise VerificationError(
                f"Ticket {ticket.ticket_id} {'expired' if gone else 'status check failed'}: {exc}",
                retryable=exc.retryable and not gone,
                status_code=exc.status_code,
            ) from exc
        try:
            received = parse_received_range(resp.headers.get('Range'))
        except ValueError as exc:
            raise VerificationError(str(exc), retryable=True, status_code=resp.status_code) from exc
        return UploadProgress(bytes_received=received)

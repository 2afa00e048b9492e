from typing import Optional, Tuple

from utils.logs import debug, log

from .exceptions import TicketAcquisitionError, VimeoApiError
from .models import UploadTicket, clip_id_from_uri
from .transport import VimeoTransport

# Streaming tickets with top-level upload_link_secure/complete_uri/ticket_id
# are the 3.2 response shape; newer versions describe tus uploads instead.
TICKET_ACCEPT_HEADER = 'application/vnd.vimeo.*+json;version=3.2'


class TicketService:
    """Opens streaming upload tickets and converts finished ones into videos."""

    def __init__(self, transport: VimeoTransport, ticket_path: str = '/me/videos'):
        self.transport = transport
        self.ticket_path = ticket_path

    def create_upload_ticket(self, size: int, content_type: str) -> UploadTicket:
        body = {'type': 'streaming', 'upload': {'approach': 'streaming', 'size': size}}
        try:
            resp = self.transport.request(
                'POST',
                self.ticket_path,
                json=body,
                headers={'Accept': TICKET_ACCEPT_HEADER},
                expected=(200, 201),
            )
            ticket = UploadTicket.from_response(resp.json())
        except VimeoApiError as exc:
            raise TicketAcquisitionError(f"Upload ticket refused: {exc}") from exc
        except ValueError as exc:
            raise TicketAcquisitionError(f"Malformed upload ticket: {exc}") from exc
        log(f"Upload ticket {ticket.ticket_id} opened for {size} bytes ({content_type})")
        return ticket

    def complete_upload(self, ticket: UploadTicket) -> Tuple[Optional[int], Optional[str]]:
        """Finalize the ticket; returns ``(clip_id, clip_uri)`` from the Location header."""
        resp = self.transport.request('DELETE', ticket.complete_uri, expected=(200, 201, 204))
        clip_uri = resp.headers.get('Location') or ticket.video_uri
        clip_id = clip_id_from_uri(clip_uri)
        debug(f"Ticket {ticket.ticket_id} completed as {clip_uri}")
        return clip_id, clip_uri

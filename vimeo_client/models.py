from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class UploadState(str, Enum):
    NOT_STARTED = 'not_started'
    TICKET_ACQUIRED = 'ticket_acquired'
    TRANSFERRING = 'transferring'
    VERIFYING = 'verifying'
    COMPLETED = 'completed'
    FAILED = 'failed'


@dataclass(frozen=True)
class UploadTicket:
    ticket_id: str
    upload_uri: str
    complete_uri: str
    video_uri: Optional[str] = None

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> 'UploadTicket':
        nested = payload.get('upload') if isinstance(payload.get('upload'), dict) else {}
        upload_uri = (
            payload.get('upload_link_secure')
            or payload.get('upload_link')
            or nested.get('upload_link_secure')
            or nested.get('upload_link')
        )
        complete_uri = payload.get('complete_uri') or nested.get('complete_uri')
        if not upload_uri or not complete_uri:
            raise ValueError(f"Ticket response missing upload/complete links: {sorted(payload)}")
        return cls(
            ticket_id=str(payload.get('ticket_id') or nested.get('ticket_id') or ''),
            upload_uri=str(upload_uri),
            complete_uri=str(complete_uri),
            video_uri=payload.get('uri'),
        )


@dataclass(frozen=True)
class UploadProgress:
    bytes_received: int


@dataclass(frozen=True)
class CompletedRequest:
    clip_id: Optional[int]
    clip_uri: Optional[str]
    bytes_written: int
    is_verified_complete: bool


@dataclass(frozen=True)
class EditUserParameters:
    name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None

    def to_payload(self) -> Dict[str, str]:
        # empty strings are sent so the API clears the field
        return {k: v for k, v in (('name', self.name), ('bio', self.bio), ('location', self.location)) if v is not None}


def clip_id_from_uri(uri: Optional[str]) -> Optional[int]:
    if not uri:
        return None
    tail = uri.rstrip('/').rsplit('/', 1)[-1]
    try:
        return int(tail)
    except ValueError:
        return None

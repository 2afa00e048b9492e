"""Resumable upload loop: ticket, chunked transfer, verification, finalize.

The loop only ever moves its send cursor to an offset the server reported
through the verifier. A send that "succeeded" proves nothing on its own, so
duplicated chunks are harmless and lost chunks are resent from the exact
offset the server holds.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from config import DEFAULT_CHUNK_SIZE
from utils.logs import log, warn

from .binary_content import BinaryContent
from .exceptions import TransferError, TransferExhaustedError, UploadError, VerificationError, VimeoApiError
from .models import CompletedRequest, UploadState, UploadTicket
from .tickets import TicketService
from .transfer import ChunkTransferEngine
from .transport import VimeoTransport
from .verifier import ProgressVerifier

ProgressCallback = Callable[[int, int], None]


@dataclass
class RetryPolicy:
    max_retries: int = 5
    backoff_sec: float = 1.0
    backoff_max_sec: float = 64.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def delay(self, attempt: int) -> float:
        return min(self.backoff_sec * (2 ** max(0, attempt - 1)), self.backoff_max_sec)

    def wait(self, attempt: int) -> None:
        pause = self.delay(attempt)
        if pause > 0:
            self.sleep(pause)


class UploadOrchestrator:
    """Drives one upload at a time; create one instance per concurrent upload."""

    def __init__(
        self,
        tickets: TicketService,
        engine: ChunkTransferEngine,
        verifier: ProgressVerifier,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        if chunk_size <= 0:
            raise ValueError('chunk_size must be positive')
        self.tickets = tickets
        self.engine = engine
        self.verifier = verifier
        self.chunk_size = chunk_size
        self.retry_policy = retry_policy or RetryPolicy()
        self.state = UploadState.NOT_STARTED
        self.ticket: Optional[UploadTicket] = None
        self.bytes_written = 0

    @classmethod
    def from_transport(cls, transport: VimeoTransport, chunk_size: int = DEFAULT_CHUNK_SIZE, retry_policy: Optional[RetryPolicy] = None) -> 'UploadOrchestrator':
        return cls(
            TicketService(transport),
            ChunkTransferEngine(transport),
            ProgressVerifier(transport),
            chunk_size=chunk_size,
            retry_policy=retry_policy,
        )

    def upload_entire_content(self, content: BinaryContent, on_progress: Optional[ProgressCallback] = None) -> CompletedRequest:
        self.state = UploadState.NOT_STARTED
        self.ticket = None
        self.bytes_written = 0
        if content.length == 0:
            self.state = UploadState.COMPLETED
            return CompletedRequest(clip_id=None, clip_uri=None, bytes_written=0, is_verified_complete=True)
        try:
            self.ticket = self.tickets.create_upload_ticket(content.length, content.content_type)
        except BaseException:
            self.state = UploadState.FAILED
            raise
        self.state = UploadState.TICKET_ACQUIRED
        return self._run(content, self.ticket, on_progress, verify_first=False)

    def resume(self, content: BinaryContent, ticket: UploadTicket, on_progress: Optional[ProgressCallback] = None) -> CompletedRequest:
        """Continue an interrupted upload on a ticket that is still open."""
        self.ticket = ticket
        self.bytes_written = 0
        self.state = UploadState.TICKET_ACQUIRED
        return self._run(content, ticket, on_progress, verify_first=True)

    def _run(self, content: BinaryContent, ticket: UploadTicket, on_progress: Optional[ProgressCallback], verify_first: bool) -> CompletedRequest:
        try:
            received = self._transfer(content, ticket, on_progress, verify_first)
            clip_id, clip_uri = self._finalize(ticket)
        except BaseException:
            self.state = UploadState.FAILED
            raise
        self.state = UploadState.COMPLETED
        log(f"Upload {ticket.ticket_id} complete: {self.bytes_written} bytes as {clip_uri}")
        return CompletedRequest(
            clip_id=clip_id,
            clip_uri=clip_uri,
            bytes_written=self.bytes_written,
            is_verified_complete=self.bytes_written == content.length and received == content.length,
        )

    def _transfer(self, content: BinaryContent, ticket: UploadTicket, on_progress: Optional[ProgressCallback], verify_first: bool) -> int:
        total = content.length
        offset = 0
        high_water = 0
        failures = 0
        send = not verify_first
        while True:
            problem: Union[str, UploadError, None] = None
            if send:
                self.state = UploadState.TRANSFERRING
                chunk = content.read(offset, self.chunk_size)
                try:
                    self.engine.send_chunk(ticket, offset, chunk, total, content.content_type)
                except TransferError as exc:
                    self._raise_if_fatal(exc)
                    problem = exc

            self.state = UploadState.VERIFYING
            try:
                received = self.verifier.query_bytes_received(ticket).bytes_received
            except VerificationError as exc:
                self._raise_if_fatal(exc)
                failures = self._spend_retry(failures, exc)
                # ask again before sending anything else
                send = False
                continue

            self.bytes_written = min(received, total)
            if on_progress is not None:
                on_progress(self.bytes_written, total)
            if received >= total:
                return received

            if received > high_water:
                high_water = received
                failures = 0
                problem = None
            elif send and received <= offset and problem is None:
                problem = f"server holds {received} bytes after chunk at {offset}"

            if problem is not None:
                failures = self._spend_retry(failures, problem)
            if received < offset:
                warn(f"Server lost data on {ticket.ticket_id}; rewinding from {offset} to {received}")
            offset = received
            send = True

    def _finalize(self, ticket: UploadTicket):
        attempt = 0
        while True:
            try:
                return self.tickets.complete_upload(ticket)
            except VimeoApiError as exc:
                if not exc.retryable:
                    raise UploadError(f"Finalizing {ticket.ticket_id} failed: {exc}", self.bytes_written) from exc
                attempt += 1
                if attempt > self.retry_policy.max_retries:
                    raise TransferExhaustedError(
                        f"Finalizing {ticket.ticket_id} failed after {attempt} attempts: {exc}",
                        self.bytes_written,
                        attempts=attempt,
                    ) from exc
                warn(f"Finalize attempt {attempt} for {ticket.ticket_id} failed ({exc}); retrying")
                self.retry_policy.wait(attempt)

    def _raise_if_fatal(self, exc: UploadError) -> None:
        if exc.retryable:
            return
        exc.bytes_written = self.bytes_written
        raise exc

    def _spend_retry(self, failures: int, reason) -> int:
        failures += 1
        if failures > self.retry_policy.max_retries:
            raise TransferExhaustedError(
                f"Gave up after {failures} attempts without progress at {self.bytes_written} bytes: {reason}",
                self.bytes_written,
                attempts=failures,
            ) from (reason if isinstance(reason, BaseException) else None)
        warn(f"Attempt {failures}/{self.retry_policy.max_retries} without progress ({reason}); retrying")
        self.retry_policy.wait(failures)
        return failures

from .auth import AuthorizationClient, FileTokenProvider
from .binary_content import BinaryContent
from .client import VimeoClient
from .exceptions import (
    OutOfRangeError,
    TicketAcquisitionError,
    TransferError,
    TransferExhaustedError,
    UploadError,
    VerificationError,
    VimeoApiError,
    VimeoError,
)
from .models import CompletedRequest, EditUserParameters, UploadProgress, UploadState, UploadTicket
from .orchestrator import RetryPolicy, UploadOrchestrator
from .tickets import TicketService
from .transfer import ChunkTransferEngine
from .transport import StaticTokenProvider, VimeoTransport
from .verifier import ProgressVerifier

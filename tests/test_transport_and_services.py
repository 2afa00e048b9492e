import pytest
import requests

from conftest import FakeSession, make_response
from vimeo_client.exceptions import TicketAcquisitionError, TransferError, VerificationError, VimeoApiError
from vimeo_client.models import UploadTicket
from vimeo_client.tickets import TICKET_ACCEPT_HEADER, TicketService
from vimeo_client.transfer import ChunkTransferEngine, content_range
from vimeo_client.transport import ACCEPT_HEADER, StaticTokenProvider, VimeoTransport
from vimeo_client.verifier import ProgressVerifier, parse_received_range

API = 'https://api.vimeo.test'
TICKET = UploadTicket(
    ticket_id='abc',
    upload_uri='https://upload.vimeo.test/upload?ticket_id=abc',
    complete_uri='/users/1/uploads/abc',
    video_uri='/users/1/tickets/abc',
)


def _transport(*responses):
    session = FakeSession(list(responses))
    return VimeoTransport(StaticTokenProvider('secret-token'), api_url=API, timeout=5, session=session), session


def test_transport_sends_bearer_token_and_joins_paths():
    transport, session = _transport(make_response(200, {'name': 'me'}))

    assert transport.get_json('/me') == {'name': 'me'}

    call = session.calls[0]
    assert call['url'] == f"{API}/me"
    assert call['headers']['Authorization'] == 'Bearer secret-token'
    assert call['timeout'] == 5


def test_transport_leaves_absolute_urls_alone():
    transport, _ = _transport()

    assert transport.url_for('https://upload.vimeo.test/x') == 'https://upload.vimeo.test/x'
    assert transport.url_for('videos/1') == f"{API}/videos/1"


@pytest.mark.parametrize('status,retryable', [(400, False), (401, False), (404, False), (429, True), (503, True)])
def test_unexpected_status_is_classified_by_code(status, retryable):
    transport, _ = _transport(make_response(status, {'error': 'Please try again.', 'error_code': 9000}))

    with pytest.raises(VimeoApiError) as info:
        transport.get_json('/me/videos')

    assert info.value.status_code == status
    assert info.value.retryable is retryable
    assert info.value.error_code == 9000
    assert 'Please try again.' in str(info.value)


def test_connection_failure_is_retryable():
    transport, _ = _transport(requests.ConnectionError('reset by peer'))

    with pytest.raises(VimeoApiError) as info:
        transport.get_json('/me')

    assert info.value.status_code is None
    assert info.value.retryable is True


def test_malformed_request_is_not_retryable():
    transport, _ = _transport(requests.exceptions.InvalidURL('bad url'))

    with pytest.raises(VimeoApiError) as info:
        transport.get_json('/me')

    assert info.value.retryable is False


def test_static_token_provider_requires_token():
    with pytest.raises(ValueError):
        StaticTokenProvider('')


def test_ticket_service_parses_streaming_ticket():
    transport, session = _transport(make_response(201, {
        'uri': '/users/1/tickets/abc',
        'ticket_id': 'abc',
        'upload_link': 'http://upload.vimeo.test/upload?ticket_id=abc',
        'upload_link_secure': 'https://upload.vimeo.test/upload?ticket_id=abc',
        'complete_uri': '/users/1/uploads/abc',
    }))

    ticket = TicketService(transport).create_upload_ticket(1234, 'video/mp4')

    assert ticket == TICKET
    call = session.calls[0]
    assert call['method'] == 'POST'
    assert call['url'] == f"{API}/me/videos"
    assert call['json']['type'] == 'streaming'
    assert call['json']['upload']['size'] == 1234
    assert call['headers']['Accept'] == TICKET_ACCEPT_HEADER
    assert call['headers']['Authorization'] == 'Bearer secret-token'


def test_ticket_links_nested_under_upload_are_accepted():
    ticket = UploadTicket.from_response({
        'uri': '/users/1/tickets/abc',
        'upload': {
            'ticket_id': 'abc',
            'upload_link': 'https://upload.vimeo.test/upload?ticket_id=abc',
            'complete_uri': '/users/1/uploads/abc',
        },
    })

    assert ticket == TICKET


def test_other_requests_keep_default_api_version():
    transport, session = _transport(make_response(200, {}))

    transport.get_json('/me')

    assert session.calls[0]['headers']['Accept'] == ACCEPT_HEADER


def test_ticket_refusal_becomes_ticket_acquisition_error():
    transport, _ = _transport(make_response(403, {'error': 'Your upload quota is exhausted'}))

    with pytest.raises(TicketAcquisitionError, match='quota'):
        TicketService(transport).create_upload_ticket(10, 'video/mp4')


def test_malformed_ticket_becomes_ticket_acquisition_error():
    transport, _ = _transport(make_response(201, {'ticket_id': 'abc'}))

    with pytest.raises(TicketAcquisitionError):
        TicketService(transport).create_upload_ticket(10, 'video/mp4')


def test_complete_upload_reads_clip_from_location():
    transport, session = _transport(make_response(201, headers={'Location': '/videos/987654'}))

    clip_id, clip_uri = TicketService(transport).complete_upload(TICKET)

    assert (clip_id, clip_uri) == (987654, '/videos/987654')
    assert session.calls[0]['method'] == 'DELETE'
    assert session.calls[0]['url'] == f"{API}/users/1/uploads/abc"


def test_send_chunk_tags_absolute_range():
    transport, session = _transport(make_response(308))

    status = ChunkTransferEngine(transport).send_chunk(TICKET, 1_000, b'x' * 500, 2_000, 'video/mp4')

    assert status == 308
    headers = session.calls[0]['headers']
    assert headers['Content-Range'] == 'bytes 1000-1499/2000'
    assert headers['Content-Type'] == 'video/mp4'
    assert session.calls[0]['data'] == b'x' * 500


@pytest.mark.parametrize('status,retryable', [(500, True), (400, False)])
def test_send_chunk_failure_carries_retryable_flag(status, retryable):
    transport, _ = _transport(make_response(status))

    with pytest.raises(TransferError) as info:
        ChunkTransferEngine(transport).send_chunk(TICKET, 0, b'x', 1, 'video/mp4')

    assert info.value.retryable is retryable
    assert info.value.status_code == status


def test_content_range_is_end_inclusive():
    assert content_range(0, 1, 1) == 'bytes 0-0/1'


def test_verifier_reads_range_header():
    transport, session = _transport(make_response(308, headers={'Range': 'bytes=0-2999999'}))

    progress = ProgressVerifier(transport).query_bytes_received(TICKET)

    assert progress.bytes_received == 3_000_000
    assert session.calls[0]['headers']['Content-Range'] == 'bytes */*'
    assert session.calls[0]['data'] == b''


def test_verifier_treats_missing_range_as_nothing_received():
    transport, _ = _transport(make_response(308))

    assert ProgressVerifier(transport).query_bytes_received(TICKET).bytes_received == 0


@pytest.mark.parametrize('status,retryable', [(404, False), (410, False), (503, True)])
def test_verifier_failures(status, retryable):
    transport, _ = _transport(make_response(status))

    with pytest.raises(VerificationError) as info:
        ProgressVerifier(transport).query_bytes_received(TICKET)

    assert info.value.retryable is retryable


@pytest.mark.parametrize('header,expected', [(None, 0), ('', 0), ('bytes=0-0', 1), ('bytes=0-999', 1000), ('bytes 0-41', 42)])
def test_parse_received_range(header, expected):
    assert parse_received_range(header) == expected


def test_parse_received_range_rejects_garbage():
    with pytest.raises(ValueError):
        parse_received_range('items=1-2')

from logging import getLogger
from ._config import ClientConfig
from ._config import get_default_config
from ._engine import oneshot
from ._errors import BadHeadersError
from ._errors import BadSniNameError
from ._errors import BadStatusCodeError
from ._errors import BadStatusLineError
from ._errors import BadUrlError
from ._errors import DnsEmptyError
from ._errors import DnsFailedError
from ._errors import HeadersTooLongError
from ._errors import OneshotError
from ._errors import PollTimeoutError
from ._errors import RelativeUrlError
from ._errors import SpoolError
from ._errors import StatusLineTooLongError
from ._errors import TlsProtocolError
from ._errors import TransportError
from ._errors import UnknownSchemeError
from ._framer import frame
from ._framer import Response
from ._framer import StatusCode
from ._request import build_request
from ._resolver import check_url
from ._resolver import Endpoint
from ._resolver import resolve
from ._tls import Progress
from ._tls import TlsDriver


__all__ = [
    'get',
    'ClientConfig',
    'Endpoint', 'resolve',
    'build_request',
    'TlsDriver', 'Progress',
    'oneshot',
    'frame', 'Response', 'StatusCode',
    'OneshotError',
    'RelativeUrlError', 'BadUrlError', 'UnknownSchemeError', 'BadSniNameError',
    'DnsFailedError', 'DnsEmptyError',
    'TransportError', 'TlsProtocolError', 'SpoolError', 'PollTimeoutError',
    'StatusLineTooLongError', 'BadStatusLineError', 'BadStatusCodeError', 'HeadersTooLongError', 'BadHeadersError']


logger = getLogger(__name__)


def get(url, config=None):
    """Fetch URL with single HTTP/1.1 GET request over new TLS connection.

    Returns Response positioned at first body byte. Non-2xx responses are returned, not raised.
    Raises OneshotError subclass on any failure.
    """
    # Validate server name and format request before any I/O.
    check_url(url)
    request = build_request(url)
    endpoint = resolve(url)

    if config is None:
        config = get_default_config()

    spool = oneshot(endpoint, request, config)
    response = frame(spool)
    logger.debug('GET %s returned %d.', url, response.status())

    return response

from errno import EAGAIN
from errno import EINPROGRESS
from errno import EWOULDBLOCK
from logging import getLogger
from os import strerror
from socket import IPPROTO_TCP
from socket import SO_ERROR
from socket import SOCK_STREAM
from socket import socket
from socket import SOL_SOCKET
from tempfile import NamedTemporaryFile
from ._errors import PollTimeoutError
from ._errors import SpoolError
from ._errors import TransportError
from ._poll import EVENT_ERROR
from ._poll import EVENT_HUP
from ._poll import EVENT_READ
from ._poll import EVENT_WRITE
from ._poll import Poller
from ._tls import TlsDriver


logger = getLogger(__name__)

_CONNECT_PENDING = {0, EINPROGRESS, EWOULDBLOCK, EAGAIN}

try:
    from errno import WSAEWOULDBLOCK # pylint: disable=C0412

    _CONNECT_PENDING.add(WSAEWOULDBLOCK)
except ImportError:
    pass


def _get_socket_exception(sock):
    code = sock.getsockopt(SOL_SOCKET, SO_ERROR)

    return OSError(code, strerror(code))


def _connect(endpoint):
    try:
        sock = socket(endpoint.family, SOCK_STREAM, IPPROTO_TCP)
    except OSError as os_error:
        raise TransportError(f'Failed to create socket: {os_error}.') from os_error

    sock.setblocking(False)

    # Connection completion is reported by poller as writable socket.
    code = sock.connect_ex(endpoint.socket_address)

    if code not in _CONNECT_PENDING:
        sock.close()
        os_error = OSError(code, strerror(code))

        raise TransportError(f'Failed to connect to {endpoint.socket_address}: {os_error}.') from os_error

    return sock


def _create_spool():
    try:
        return NamedTemporaryFile(mode='w+b', prefix='tlsoneshot-', suffix='.spool')
    except OSError as os_error:
        raise SpoolError(f'Failed to create spool file: {os_error}.') from os_error


def _drain(driver, spool, chunk_size):
    # Returns True if peer closed TLS session.
    while True:
        try:
            data = driver.read(chunk_size)
        except BlockingIOError:
            return False
        except ConnectionAbortedError:
            return True

        try:
            spool.write(data)
        except OSError as os_error:
            raise SpoolError(f'Failed to write spool file: {os_error}.') from os_error


def oneshot(endpoint, request, config):
    """Send request over new TLS connection and spool entire response.

    Returns temporary file with decrypted response, starting with status line. Response ends when
    peer either sends close_notify or closes TCP connection.
    """
    sock = _connect(endpoint)
    spool = None
    poller = None

    try:
        driver = TlsDriver(sock, endpoint.host_name, config.context, config.chunk_size)
        # Request is encrypted and sent after handshake completes.
        driver.write(request)
        spool = _create_spool()
        poller = Poller(config.technology)
        fileno = driver.fileno()
        poller.register(fileno, driver.desired_readiness())
        logger.debug('Connecting to %s using %s.', endpoint, poller.technology)

        while True:
            events = poller.poll(config.timeout)

            if not events:
                raise PollTimeoutError(f'No activity from {endpoint} for {config.timeout} seconds.')

            for _, event in events:
                if (event & EVENT_READ) == 0 and (event & EVENT_ERROR) == EVENT_ERROR:
                    # Socket failed. Pending data, if any, is read first, then recv reports the error.
                    os_error = _get_socket_exception(sock)

                    raise TransportError(f'Connection to {endpoint} failed: {os_error}.') from os_error

                if (event & (EVENT_READ | EVENT_HUP)) != 0:
                    if driver.pump_readable().eof:
                        logger.debug('Response from %s ended with TCP EOF.', endpoint)

                        return spool

                    if _drain(driver, spool, config.chunk_size):
                        logger.debug('Response from %s ended with TLS close_notify.', endpoint)

                        return spool

                if (event & EVENT_WRITE) == EVENT_WRITE:
                    driver.pump_writable()

                poller.modify(fileno, driver.desired_readiness())
    except BaseException:
        if spool is not None:
            spool.close()

        raise
    finally:
        if poller is not None:
            poller.close()

        sock.close()

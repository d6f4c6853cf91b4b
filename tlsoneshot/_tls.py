from collections import deque
from logging import getLogger
from ssl import MemoryBIO
from ssl import SSLError
from ssl import SSLWantReadError
from ssl import SSLWantWriteError
from ssl import SSLZeroReturnError
from ._errors import TlsProtocolError
from ._errors import TransportError
from ._poll import EVENT_READ
from ._poll import EVENT_WRITE


logger = getLogger(__name__)

# Most platforms limit vectored writes to 1024 buffers (IOV_MAX).
_IOV_MAX = 1024


class Progress:
    __slots__ = ('eof', )

    def __init__(self, eof):
        # True if peer closed TCP connection.
        self.eof = eof

    def __repr__(self):
        return f'Progress(eof={self.eof})'


class TlsDriver:
    """Client side TLS session bound to one non-blocking TCP socket.

    TLS protocol runs over memory buffers. Socket I/O happens only in pump_readable and
    pump_writable, when poller reports readiness, so driver never blocks.
    """

    __slots__ = \
        '_socket', '_chunk_size', \
        '_incoming', '_outgoing', '_object', \
        '_pending_plaintext', '_pending_ciphertext', \
        '_handshake_done', '_peer_closed'

    def __init__(self, sock, server_hostname, context, chunk_size=16384):
        self._socket = sock
        self._chunk_size = chunk_size
        # Ciphertext received from socket, waiting to be processed by TLS session.
        self._incoming = MemoryBIO()
        # Ciphertext produced by TLS session, waiting to be moved to _pending_ciphertext.
        self._outgoing = MemoryBIO()
        self._object = context.wrap_bio(
            self._incoming,
            self._outgoing,
            server_hostname=server_hostname,
            server_side=False)
        # Plaintext written before handshake completion.
        self._pending_plaintext = bytearray()
        # Ciphertext chunks not yet accepted by socket, in order.
        self._pending_ciphertext = deque()
        self._handshake_done = False
        # True if peer sent close_notify.
        self._peer_closed = False

        # Produce ClientHello. Goes to memory buffer, not to socket.
        self._advance()

    @property
    def handshake_done(self):
        return self._handshake_done

    def fileno(self):
        return self._socket.fileno()

    def desired_readiness(self):
        self._collect_ciphertext()

        wants_write = len(self._pending_ciphertext) > 0
        wants_read = not self._peer_closed

        if wants_read and wants_write:
            return EVENT_READ | EVENT_WRITE
        elif wants_write:
            return EVENT_WRITE
        else:
            return EVENT_READ

    def pump_readable(self):
        try:
            data = self._socket.recv(self._chunk_size)
        except (BlockingIOError, InterruptedError):
            # Spurious wakeup, try again on next readiness event.
            return Progress(False)
        except OSError as os_error:
            raise TransportError(f'Failed to receive data: {os_error}.') from os_error

        if len(data) == 0:
            # Clean TCP EOF, with or without close_notify.
            return Progress(True)

        self._incoming.write(data)
        self._advance()

        return Progress(False)

    def pump_writable(self):
        self._collect_ciphertext()

        if not self._pending_ciphertext:
            return

        try:
            if hasattr(self._socket, 'sendmsg'):
                size = self._socket.sendmsg(list(self._pending_ciphertext)[:_IOV_MAX])
            else:
                size = self._socket.send(b''.join(self._pending_ciphertext))
        except (BlockingIOError, InterruptedError):
            return
        except OSError as os_error:
            raise TransportError(f'Failed to send data: {os_error}.') from os_error

        # Short write is fine. Remaining data is sent on next writable event.
        while size > 0:
            chunk = self._pending_ciphertext[0]

            if len(chunk) <= size:
                self._pending_ciphertext.popleft()
                size -= len(chunk)
            else:
                self._pending_ciphertext[0] = chunk[size:]
                size = 0

    def write(self, data):
        self._pending_plaintext += data
        self._advance()

        return len(data)

    def read(self, size=16384):
        if self._peer_closed:
            raise ConnectionAbortedError('TLS session was closed by peer.')

        # Handshake is driven by _advance only, otherwise queued plaintext would wait for next readable event.
        if not self._handshake_done:
            raise BlockingIOError('TLS handshake is not complete.')

        try:
            data = self._object.read(size)
        except (SSLWantReadError, SSLWantWriteError) as ssl_error:
            raise BlockingIOError('No decrypted data available.') from ssl_error
        except SSLZeroReturnError as ssl_error:
            self._on_close_notify()

            raise ConnectionAbortedError('TLS session was closed by peer.') from ssl_error
        except SSLError as ssl_error:
            raise TlsProtocolError(f'Failed to decrypt data: {ssl_error}.') from ssl_error

        # SSLObject reports received close_notify as empty read, not as SSLZeroReturnError.
        if size > 0 and len(data) == 0:
            self._on_close_notify()

            raise ConnectionAbortedError('TLS session was closed by peer.')

        # Reading may produce TLS messages too, for instance key update response.
        self._collect_ciphertext()

        return data

    def close(self):
        self._socket.close()

    def _advance(self):
        if not self._handshake_done:
            try:
                self._object.do_handshake()
            except (SSLWantReadError, SSLWantWriteError):
                return
            except SSLError as ssl_error:
                raise TlsProtocolError(f'TLS handshake failed: {ssl_error}.') from ssl_error

            self._handshake_done = True
            logger.debug(
                'TLS handshake completed, protocol %s, cipher %s.',
                self._object.version(),
                self._object.cipher()[0])

        if self._pending_plaintext:
            try:
                size = self._object.write(self._pending_plaintext)
            except (SSLWantReadError, SSLWantWriteError):
                return
            except SSLError as ssl_error:
                raise TlsProtocolError(f'Failed to encrypt data: {ssl_error}.') from ssl_error

            del self._pending_plaintext[:size]

        self._collect_ciphertext()

    def _on_close_notify(self):
        self._peer_closed = True
        logger.debug('Peer closed TLS session.')

    def _collect_ciphertext(self):
        if self._outgoing.pending:
            self._pending_ciphertext.append(self._outgoing.read())

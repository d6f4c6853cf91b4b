from collections import deque
from httptools import HttpParserError
from httptools import HttpParserUpgrade
from httptools import HttpResponseParser
from io import RawIOBase
from logging import getLogger
from ._errors import BadHeadersError
from ._errors import BadStatusCodeError
from ._errors import BadStatusLineError
from ._errors import HeadersTooLongError
from ._errors import SpoolError
from ._errors import StatusLineTooLongError


logger = getLogger(__name__)

# Status line and header block must fit into this many bytes.
MAX_HEAD_SIZE = 32 * 1024
MAX_HEADERS = 64

# Status line is validated separately, header block is validated after this one.
_SYNTHETIC_STATUS_LINE = b'HTTP/1.1 200 OK\r\n'

_LENGTH_HEADERS = (b'content-length', b'transfer-encoding')
_HIDDEN_PREFIX = b'X-Tlsoneshot-Hidden-'


class StatusCode(int):
    def is_success(self):
        return 200 <= self <= 299

    def __repr__(self):
        return f'StatusCode({int(self)})'


class Response(RawIOBase):
    """Body of HTTP response, backed by spool file.

    Read cursor starts at first body byte. Status line and headers are not readable through
    this object, rewind returns to body start. Spool file is deleted when response is closed.
    """

    def __init__(self, spool, status, header_end, headers):
        super().__init__()
        self._spool = spool
        self._status = StatusCode(status)
        self._header_end = header_end
        self._headers = headers
        self._spool.seek(header_end)

    @property
    def header_end(self):
        return self._header_end

    @property
    def headers(self):
        return self._headers

    @property
    def spool_name(self):
        return self._spool.name

    def status(self):
        return self._status

    def rewind(self):
        self._spool.seek(self._header_end)

    def readable(self):
        return True

    def readinto(self, buffer):
        return self._spool.readinto(buffer)

    def close(self):
        if not self.closed:
            self._spool.close()

        super().close()

    def __repr__(self):
        return f'<Response status={int(self._status)} header_end={self._header_end}>'


class _HeaderCollector:
    __slots__ = 'headers', '_hidden'

    def __init__(self, hidden):
        self.headers = []
        # Original names of renamed body length headers, in wire order.
        self._hidden = hidden

    def on_header(self, name: bytes, value: bytes):
        if self._hidden and name == _HIDDEN_PREFIX + self._hidden[0]:
            name = self._hidden.popleft()

        self.headers.append((name, value))


def _hide_length_headers(block):
    # Renamed, otherwise parser applies body length rules to them.
    lines = block.split(b'\n')
    hidden = deque()

    for index, line in enumerate(lines):
        name, colon, rest = line.partition(b':')

        if colon and name.lower() in _LENGTH_HEADERS:
            hidden.append(name)
            lines[index] = _HIDDEN_PREFIX + name + colon + rest

    return b'\n'.join(lines), hidden


def _read_head(spool):
    chunks = []
    size = 0

    while size < MAX_HEAD_SIZE:
        chunk = spool.read(MAX_HEAD_SIZE - size)

        if not chunk:
            break

        chunks.append(chunk)
        size += len(chunk)

    return b''.join(chunks)


def _parse_status_line(status_line):
    try:
        fields = status_line.decode('utf-8').split()
    except UnicodeDecodeError as unicode_error:
        raise BadStatusLineError('Status line is not valid UTF-8.') from unicode_error

    if len(fields) < 1:
        raise BadStatusLineError('Status line has no HTTP version.')

    if len(fields) < 2:
        raise BadStatusLineError('Status line has no status code.')

    status = fields[1]

    # int() accepts signs, underscores and non-ASCII digits, none of which are valid here.
    if not (status.isascii() and status.isdigit() and len(status) <= 3):
        raise BadStatusCodeError(f'Status code "{status}" is not a number.')

    return int(status)


def _find_header_end(block):
    # Returns offset of first byte after blank line, or None if block is incomplete.
    position = 0
    count = 0

    while True:
        newline = block.find(b'\n', position)

        if newline < 0:
            return None

        line = block[position:newline]
        position = newline + 1

        if line in (b'', b'\r'):
            return position

        count += 1

        if count > MAX_HEADERS:
            raise BadHeadersError(f'Response has more than {MAX_HEADERS} headers.')


def _parse_headers(block):
    block, hidden = _hide_length_headers(block)
    collector = _HeaderCollector(hidden)
    parser = HttpResponseParser(collector)

    try:
        parser.feed_data(_SYNTHETIC_STATUS_LINE + block)
    except HttpParserUpgrade:
        # Upgrade responses stop parser right after headers, which is fine.
        pass
    except HttpParserError as parser_error:
        raise BadHeadersError(f'Invalid header block: {parser_error}.') from parser_error

    return collector.headers


def frame(spool):
    try:
        try:
            spool.seek(0)
            head = _read_head(spool)
        except OSError as os_error:
            raise SpoolError(f'Failed to read spool file: {os_error}.') from os_error

        newline = head.find(b'\n')

        if newline < 0:
            raise StatusLineTooLongError(f'No status line within first {len(head)} bytes.')

        status = _parse_status_line(head[:newline])
        block = head[newline + 1:]
        block_end = _find_header_end(block)

        if block_end is None:
            raise HeadersTooLongError(f'Headers do not fit into {MAX_HEAD_SIZE} bytes (or are horribly invalid).')

        headers = _parse_headers(block[:block_end])
        header_end = newline + 1 + block_end
        logger.debug('Framed response with status %d, body starts at %d.', status, header_end)

        return Response(spool, status, header_end, headers)
    except BaseException:
        # Partial responses are never returned.
        spool.close()

        raise

from certifi import where
from ssl import PROTOCOL_TLS_CLIENT
from ssl import SSLContext
from ssl import TLSVersion


DEFAULT_TIMEOUT = 60
DEFAULT_CHUNK_SIZE = 16 * 1024


class ClientConfig:
    __slots__ = '_context', '_timeout', '_technology', '_chunk_size'

    def __init__(self, cafile=None, cadata=None, timeout=DEFAULT_TIMEOUT, technology=None, chunk_size=DEFAULT_CHUNK_SIZE):
        assert technology in (None, 'epoll', 'poll', 'select'), \
            'Value of technology must be one of None, "epoll", "poll" or "select".'
        assert chunk_size > 0, 'Value of chunk_size must be positive.'

        # Trust store is fixed at construction. Platform certificate store is never consulted, \
        # so the same roots are used on every machine. Extra roots in cadata are added on top.
        self._context = SSLContext(PROTOCOL_TLS_CLIENT)
        self._context.minimum_version = TLSVersion.TLSv1_2
        self._context.load_verify_locations(cafile=cafile or where())

        if cadata:
            self._context.load_verify_locations(cadata=cadata)

        self._timeout = timeout
        self._technology = technology
        self._chunk_size = chunk_size

    @property
    def context(self):
        return self._context

    @property
    def timeout(self):
        return self._timeout

    @property
    def technology(self):
        return self._technology

    @property
    def chunk_size(self):
        return self._chunk_size


_default_config = None


def get_default_config():
    global _default_config # pylint: disable=W0603

    # Racing threads may both build a config. Both are equivalent and one of them wins.
    if _default_config is None:
        _default_config = ClientConfig()

    return _default_config

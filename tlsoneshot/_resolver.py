from ipaddress import ip_address
from logging import getLogger
from re import compile as re_compile
from socket import gaierror
from socket import getaddrinfo
from socket import IPPROTO_TCP
from socket import SOCK_STREAM
from urllib.parse import urlsplit
from ._errors import BadSniNameError
from ._errors import BadUrlError
from ._errors import DnsEmptyError
from ._errors import DnsFailedError
from ._errors import RelativeUrlError
from ._errors import UnknownSchemeError


logger = getLogger(__name__)

# Only secure schemes. Cleartext ports make no sense for TLS-only client.
DEFAULT_PORTS = {
    'https': 443,
    'wss': 443,
}

_LABEL_PATTERN = re_compile(r'^[A-Za-z0-9_](?:[A-Za-z0-9_-]{0,61}[A-Za-z0-9_])?$')


class Endpoint:
    __slots__ = 'host_name', 'family', 'socket_address'

    def __init__(self, host_name, family, socket_address):
        # Used both for SNI and for certificate name validation.
        self.host_name = host_name
        self.family = family
        self.socket_address = socket_address

    def __repr__(self):
        return f'Endpoint({self.host_name!r}, {self.socket_address!r})'


def split_url(url):
    try:
        parts = urlsplit(str(url))
    except ValueError as value_error:
        raise BadUrlError(f'URL "{url}" is malformed: {value_error}.') from value_error

    if not parts.hostname:
        raise RelativeUrlError(f'URL "{url}" has no host.')

    try:
        port = parts.port
    except ValueError as value_error:
        raise BadUrlError(f'URL "{url}" has invalid port.') from value_error

    if port is None:
        port = DEFAULT_PORTS.get(parts.scheme.lower())

        if port is None:
            raise UnknownSchemeError(f'Scheme "{parts.scheme}" has no default port and URL "{url}" has no port.')

    return parts, port


def literal_host_name(parts):
    # parts.hostname is lowercased, server name is sent as written in URL.
    host_name = parts.netloc.rpartition('@')[2]

    if host_name.startswith('['):
        return host_name[1:host_name.find(']')]

    return host_name.partition(':')[0]


def check_url(url):
    parts, port = split_url(url)
    host_name = literal_host_name(parts)
    check_sni_name(host_name)

    return parts, host_name, port


def check_sni_name(host_name):
    try:
        ip_address(host_name)
    except ValueError:
        pass
    else:
        raise BadSniNameError(f'IP address "{host_name}" cannot be used as server name.')

    if not host_name.isascii():
        raise BadSniNameError(f'Host "{host_name}" is not ASCII.')

    if len(host_name) > 253:
        raise BadSniNameError(f'Host "{host_name}" is longer than 253 characters.')

    if host_name.endswith('.'):
        raise BadSniNameError(f'Host "{host_name}" ends with a dot.')

    for label in host_name.split('.'):
        if not _LABEL_PATTERN.match(label):
            raise BadSniNameError(f'Host "{host_name}" has invalid label "{label}".')


def resolve(url):
    _, host_name, port = check_url(url)

    try:
        addresses = getaddrinfo(host_name, port, type=SOCK_STREAM, proto=IPPROTO_TCP)
    except (gaierror, UnicodeError) as dns_error:
        raise DnsFailedError(f'Failed to resolve "{host_name}": {dns_error}.') from dns_error

    if not addresses:
        raise DnsEmptyError(f'Resolution of "{host_name}" returned no addresses.')

    # First address only, no address family fallback.
    family, _, _, _, socket_address = addresses[0]
    endpoint = Endpoint(host_name, family, socket_address)
    logger.debug('Resolved %s to %s.', url, endpoint)

    return endpoint

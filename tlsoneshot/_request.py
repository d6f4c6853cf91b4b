from ._errors import BadUrlError
from ._resolver import literal_host_name
from ._resolver import split_url


REQUEST_TEMPLATE = \
    'GET {target} HTTP/1.1\r\n' \
    'Host: {host}\r\n' \
    'Connection: close\r\n' \
    'Accept-Encoding: identity\r\n' \
    '\r\n'


def build_request(url, host=None):
    parts, _ = split_url(url)
    # Empty path would produce "GET  HTTP/1.1" request line.
    target = parts.path or '/'

    # urlsplit drops "?" when query is empty. Keep it if URL has it.
    if parts.query or str(url).split('#', 1)[0].endswith('?'):
        target = f'{target}?{parts.query}'

    try:
        return REQUEST_TEMPLATE.format(target=target, host=host or literal_host_name(parts)).encode('ascii')
    except UnicodeEncodeError as unicode_error:
        raise BadUrlError(f'URL "{url}" must be percent-encoded.') from unicode_error

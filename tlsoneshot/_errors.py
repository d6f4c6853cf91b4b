class OneshotError(Exception):
    # Short machine readable name of the failure, e.g. 'Transport' or 'TlsProtocol'.
    kind = 'Oneshot'

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def __repr__(self):
        return f'{type(self).__name__}({self.message!r})'

    def __str__(self):
        return f'{self.kind}: {self.message}'


#
# Input validation. Raised before any I/O.
#
class RelativeUrlError(OneshotError, ValueError):
    kind = 'RelativeUrl'


class BadUrlError(OneshotError, ValueError):
    kind = 'BadUrl'


class UnknownSchemeError(OneshotError, ValueError):
    kind = 'UnknownScheme'


class BadSniNameError(OneshotError, ValueError):
    kind = 'BadSniName'


#
# Name resolution.
#
class DnsFailedError(OneshotError):
    kind = 'DnsFailed'


class DnsEmptyError(OneshotError):
    kind = 'DnsEmpty'


#
# Connection.
#
class TransportError(OneshotError):
    kind = 'Transport'


class TlsProtocolError(OneshotError):
    kind = 'TlsProtocol'


class SpoolError(OneshotError):
    kind = 'Spool'


class PollTimeoutError(OneshotError, TimeoutError):
    kind = 'Timeout'


#
# Response framing.
#
class StatusLineTooLongError(OneshotError):
    kind = 'StatusLineTooLong'


class BadStatusLineError(OneshotError):
    kind = 'BadStatusLine'


class BadStatusCodeError(OneshotError):
    kind = 'BadStatusCode'


class HeadersTooLongError(OneshotError):
    kind = 'HeadersTooLong'


class BadHeadersError(OneshotError):
    kind = 'BadHeaders'

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.hazmat.primitives.serialization import NoEncryption
from cryptography.hazmat.primitives.serialization import PrivateFormat
from cryptography.x509 import AuthorityKeyIdentifier
from cryptography.x509 import BasicConstraints
from cryptography.x509 import CertificateBuilder
from cryptography.x509 import DNSName
from cryptography.x509 import ExtendedKeyUsage
from cryptography.x509 import KeyUsage
from cryptography.x509 import Name
from cryptography.x509 import NameAttribute
from cryptography.x509 import random_serial_number
from cryptography.x509 import SubjectAlternativeName
from cryptography.x509 import SubjectKeyIdentifier
from cryptography.x509.oid import ExtendedKeyUsageOID
from cryptography.x509.oid import NameOID
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from os.path import join
from socket import AF_INET
from socket import IPPROTO_TCP
from socket import SOCK_STREAM
from socket import socket
from ssl import PROTOCOL_TLS_SERVER
from ssl import SSLContext
from tempfile import TemporaryDirectory
from threading import Event
from threading import Thread
from tlsoneshot import ClientConfig


def _key_usage(key_cert_sign):
    return KeyUsage(
        digital_signature=True,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=key_cert_sign,
        crl_sign=key_cert_sign,
        encipher_only=False,
        decipher_only=False)


def _validity(builder):
    now = datetime.now(timezone.utc)

    return builder.not_valid_before(now - timedelta(days=1)).not_valid_after(now + timedelta(days=10))


class Authority:
    __slots__ = 'key', 'certificate'

    def __init__(self, common_name='tlsoneshot test authority'):
        self.key = ec.generate_private_key(ec.SECP256R1())
        name = Name([NameAttribute(NameOID.COMMON_NAME, common_name)])
        builder = CertificateBuilder() \
            .subject_name(name) \
            .issuer_name(name) \
            .public_key(self.key.public_key()) \
            .serial_number(random_serial_number()) \
            .add_extension(BasicConstraints(ca=True, path_length=None), critical=True) \
            .add_extension(_key_usage(True), critical=True) \
            .add_extension(SubjectKeyIdentifier.from_public_key(self.key.public_key()), critical=False)
        self.certificate = _validity(builder).sign(self.key, SHA256())

    def certificate_pem(self):
        return self.certificate.public_bytes(Encoding.PEM).decode('ascii')

    def issue(self, host_name):
        key = ec.generate_private_key(ec.SECP256R1())
        builder = CertificateBuilder() \
            .subject_name(Name([NameAttribute(NameOID.COMMON_NAME, host_name)])) \
            .issuer_name(self.certificate.subject) \
            .public_key(key.public_key()) \
            .serial_number(random_serial_number()) \
            .add_extension(BasicConstraints(ca=False, path_length=None), critical=True) \
            .add_extension(_key_usage(False), critical=True) \
            .add_extension(ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False) \
            .add_extension(SubjectAlternativeName([DNSName(host_name)]), critical=False) \
            .add_extension(SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False) \
            .add_extension(AuthorityKeyIdentifier.from_issuer_public_key(self.key.public_key()), critical=False)
        certificate = _validity(builder).sign(self.key, SHA256())

        key_pem = key.private_bytes(
            encoding=Encoding.PEM,
            format=PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=NoEncryption())

        return certificate.public_bytes(Encoding.PEM), key_pem


def server_context(authority, host_name):
    certificate_pem, key_pem = authority.issue(host_name)
    context = SSLContext(PROTOCOL_TLS_SERVER)

    # load_cert_chain accepts file paths only.
    with TemporaryDirectory() as directory:
        certificate_path = join(directory, 'server.crt')
        key_path = join(directory, 'server.key')

        with open(certificate_path, 'wb') as certificate_file:
            certificate_file.write(certificate_pem)

        with open(key_path, 'wb') as key_file:
            key_file.write(key_pem)

        context.load_cert_chain(certificate_path, key_path)

    return context


class TlsServer:
    """Local TLS server answering single connection with canned bytes.

    Records request it received. Ends response either with close_notify or with bare TCP FIN.
    """

    def __init__(self, response, host_name='example.test', authority=None, close_notify=True):
        self.authority = authority or Authority()
        self.requests = []
        self.errors = []
        self._response = response
        self._close_notify = close_notify
        self._context = server_context(self.authority, host_name)

        self._listen_socket = socket(AF_INET, SOCK_STREAM, IPPROTO_TCP)
        self._listen_socket.bind(('127.0.0.1', 0))
        self._listen_socket.listen(1)
        self._listen_socket.settimeout(10)
        self.port = self._listen_socket.getsockname()[1]
        self._thread = Thread(target=self._serve, daemon=True)

    def __enter__(self):
        self._thread.start()

        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self._thread.join(10)
        self._listen_socket.close()

    def url(self, path):
        return f'https://example.test:{self.port}{path}'

    def addresses(self):
        return [(AF_INET, SOCK_STREAM, IPPROTO_TCP, '', ('127.0.0.1', self.port))]

    def client_config(self, **kwargs):
        return ClientConfig(cadata=self.authority.certificate_pem(), timeout=10, **kwargs)

    def _serve(self):
        try:
            tcp_server_socket, _ = self._listen_socket.accept()
        except OSError as os_error:
            self.errors.append(os_error)

            return

        tcp_server_socket.settimeout(10)

        try:
            tls_server_socket = self._context.wrap_socket(tcp_server_socket, server_side=True)
        except OSError as os_error:
            self.errors.append(os_error)
            tcp_server_socket.close()

            return

        try:
            request = b''

            while b'\r\n\r\n' not in request:
                chunk = tls_server_socket.recv(4096)

                if len(chunk) == 0:
                    break

                request += chunk

            self.requests.append(request)
            tls_server_socket.sendall(self._response)

            if self._close_notify:
                # Sends close_notify, then fails or succeeds depending on how fast client closes.
                try:
                    tls_server_socket.unwrap()
                except OSError:
                    pass
        except OSError as os_error:
            self.errors.append(os_error)
        finally:
            # Closing SSL socket does not send close_notify, peer sees TCP FIN only.
            tls_server_socket.close()


class SilentServer:
    """Local TCP server which accepts connection and never answers."""

    def __init__(self):
        self._listen_socket = socket(AF_INET, SOCK_STREAM, IPPROTO_TCP)
        self._listen_socket.bind(('127.0.0.1', 0))
        self._listen_socket.listen(1)
        self._listen_socket.settimeout(10)
        self.port = self._listen_socket.getsockname()[1]
        self._done = Event()
        self._thread = Thread(target=self._serve, daemon=True)

    def __enter__(self):
        self._thread.start()

        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self._done.set()
        self._thread.join(10)
        self._listen_socket.close()

    def url(self, path):
        return f'https://example.test:{self.port}{path}'

    def addresses(self):
        return [(AF_INET, SOCK_STREAM, IPPROTO_TCP, '', ('127.0.0.1', self.port))]

    def _serve(self):
        try:
            tcp_server_socket, _ = self._listen_socket.accept()
        except OSError:
            return

        self._done.wait(10)
        tcp_server_socket.close()

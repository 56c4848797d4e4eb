"""TLS certificate management for the server.

Keeps a self-signed certificate/key pair under a fixed directory and reuses
it across runs. The SHA256 fingerprint is logged so the operator can check
it against what the browser shows (trust-on-first-use).
"""

import datetime
import logging
import os
import secrets
import ssl
import tempfile
from dataclasses import dataclass
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from secureserve.errors import StartupError

logger = logging.getLogger(__name__)

# Certificate defaults
CERT_FILENAME = "server.crt"
KEY_FILENAME = "server.key"
DEFAULT_CERT_DAYS = 365
DEFAULT_KEY_SIZE = 2048
SERIAL_BITS = 128
COMMON_NAME = "localhost"


class CertificateError(StartupError):
    """Certificate generation, storage or loading failed."""

    def __init__(self, message: str):
        super().__init__("E400", message)


@dataclass(frozen=True)
class TLSConfig:
    """TLS material for the server."""

    cert_path: Path
    key_path: Path
    fingerprint: str

    @classmethod
    def from_paths(cls, cert_path: Path, key_path: Path) -> "TLSConfig":
        """Create config from existing certificate files.

        Args:
            cert_path: Path to certificate file
            key_path: Path to key file

        Returns:
            TLSConfig with computed fingerprint

        Raises:
            FileNotFoundError: If files don't exist
        """
        if not cert_path.exists():
            raise FileNotFoundError(f"Certificate not found: {cert_path}")
        if not key_path.exists():
            raise FileNotFoundError(f"Key not found: {key_path}")

        fingerprint = get_cert_fingerprint(cert_path)
        return cls(cert_path=cert_path, key_path=key_path, fingerprint=fingerprint)


def get_cert_fingerprint(cert_path: Path) -> str:
    """Get SHA256 fingerprint of a certificate.

    Args:
        cert_path: Path to PEM certificate file

    Returns:
        SHA256 fingerprint as hex string with colons (e.g., "AB:CD:EF:...")

    Raises:
        ValueError: If the file is not a PEM certificate
    """
    cert = x509.load_pem_x509_certificate(cert_path.read_bytes())
    return cert.fingerprint(hashes.SHA256()).hex(":").upper()


def _random_serial() -> int:
    """Return a random non-zero serial number of SERIAL_BITS bits."""
    serial = 0
    while serial == 0:
        serial = secrets.randbits(SERIAL_BITS)
    return serial


def build_certificate(
    key_size: int = DEFAULT_KEY_SIZE,
    days: int = DEFAULT_CERT_DAYS,
) -> tuple[bytes, bytes]:
    """Build a self-signed localhost certificate in memory.

    Creates a certificate with:
    - CN = localhost, issuer = subject
    - SAN = DNS:localhost
    - keyUsage = digitalSignature, keyEncipherment
    - extendedKeyUsage = serverAuth

    Returns:
        (certificate PEM, private key PEM)
    """
    key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)

    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, COMMON_NAME)])
    not_before = datetime.datetime.now(datetime.timezone.utc)
    not_after = not_before + datetime.timedelta(days=days)

    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(_random_serial())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]),
            critical=False,
        )
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(COMMON_NAME)]),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )

    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return cert_pem, key_pem


def _write_staged(directory: Path, content: bytes, mode: int) -> Path:
    """Write content to a temporary file in directory and return its path."""
    fd, name = tempfile.mkstemp(dir=directory, prefix=".secureserve-", suffix=".tmp")
    staged = Path(name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        os.chmod(staged, mode)
    except BaseException:
        staged.unlink(missing_ok=True)
        raise
    return staged


def generate_certificate(
    cert_dir: Path,
    key_size: int = DEFAULT_KEY_SIZE,
    days: int = DEFAULT_CERT_DAYS,
) -> TLSConfig:
    """Generate a new certificate/key pair, replacing any existing files.

    Both PEM blocks are built before anything touches the disk. The files are
    staged next to their final names and renamed into place; if any step
    fails, both names are removed so a half-written pair is never reused.

    Args:
        cert_dir: Directory holding server.crt and server.key
        key_size: RSA key size in bits
        days: Certificate validity in days

    Returns:
        TLSConfig with paths and fingerprint

    Raises:
        CertificateError: If generation or any file operation fails
    """
    cert_path = cert_dir / CERT_FILENAME
    key_path = cert_dir / KEY_FILENAME

    logger.info("Generating self-signed certificate for %s", COMMON_NAME)
    try:
        cert_pem, key_pem = build_certificate(key_size=key_size, days=days)
    except (ValueError, TypeError) as e:
        raise CertificateError(f"Failed to create certificate: {e}") from e

    staged: list[Path] = []
    try:
        staged.append(_write_staged(cert_dir, cert_pem, 0o644))
        staged.append(_write_staged(cert_dir, key_pem, 0o600))
        os.replace(staged[0], cert_path)
        os.replace(staged[1], key_path)
    except OSError as e:
        for path in staged + [cert_path, key_path]:
            path.unlink(missing_ok=True)
        raise CertificateError(f"Failed to write certificate files in {cert_dir}: {e}") from e

    try:
        fingerprint = get_cert_fingerprint(cert_path)
    except (OSError, ValueError) as e:
        raise CertificateError(f"Cannot read generated certificate {cert_path}: {e}") from e
    logger.info("Certificate fingerprint (SHA256): %s", fingerprint)

    return TLSConfig(cert_path=cert_path, key_path=key_path, fingerprint=fingerprint)


def ensure_certificate(cert_dir: Path) -> TLSConfig:
    """Return the certificate pair in cert_dir, generating it if incomplete.

    An intact pair is reused untouched. If either file is missing, both are
    regenerated.

    Args:
        cert_dir: Directory holding server.crt and server.key

    Returns:
        TLSConfig with paths and fingerprint

    Raises:
        CertificateError: If the directory, generation or existing files are unusable
    """
    try:
        cert_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CertificateError(f"Cannot create certificate directory {cert_dir}: {e}") from e

    cert_path = cert_dir / CERT_FILENAME
    key_path = cert_dir / KEY_FILENAME

    if cert_path.exists() and key_path.exists():
        logger.info("Using existing certificate: %s", cert_path)
        try:
            tls_config = TLSConfig.from_paths(cert_path, key_path)
        except (OSError, ValueError) as e:
            raise CertificateError(f"Cannot read certificate {cert_path}: {e}") from e
        if not verify_cert_key_match(cert_path, key_path):
            raise CertificateError(f"Certificate {cert_path} does not match key {key_path}")
        return tls_config

    if cert_path.exists() or key_path.exists():
        logger.warning("Incomplete certificate pair in %s, regenerating", cert_dir)

    return generate_certificate(cert_dir)


def verify_cert_key_match(cert_path: Path, key_path: Path) -> bool:
    """Verify that a certificate and key match.

    Args:
        cert_path: Path to certificate file
        key_path: Path to key file

    Returns:
        True if certificate and key match
    """
    try:
        cert = x509.load_pem_x509_certificate(cert_path.read_bytes())
        key = serialization.load_pem_private_key(key_path.read_bytes(), password=None)
    except (OSError, ValueError, TypeError):
        return False

    return cert.public_key().public_numbers() == key.public_key().public_numbers()


def create_ssl_context(tls_config: TLSConfig) -> ssl.SSLContext:
    """Build a server-side TLS context from the certificate pair.

    Raises:
        CertificateError: If the pair cannot be loaded
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    try:
        context.load_cert_chain(
            certfile=str(tls_config.cert_path),
            keyfile=str(tls_config.key_path),
        )
    except (OSError, ssl.SSLError) as e:
        raise CertificateError(f"Failed to load TLS key pair: {e}") from e
    return context

"""Ad-hoc HTTPS file server.

Shares a directory over TLS behind a single generated Basic auth credential,
using a self-signed certificate kept under ~/.local/share/secureserve.
"""

from secureserve.httpd import (
    Server,
    ServerConfig,
    create_server,
)
from secureserve.tls import (
    TLSConfig,
    CertificateError,
    ensure_certificate,
    generate_certificate,
    get_cert_fingerprint,
)
from secureserve.password import (
    Credential,
    CredentialError,
    generate_credential,
    generate_password,
)
from secureserve.auth import (
    AuthError,
    validate_basic_auth,
)
from secureserve.config import (
    ConfigError,
    DEFAULT_PORT,
    DEFAULT_BIND,
)
from secureserve.errors import StartupError

__all__ = [
    # Server
    "Server",
    "ServerConfig",
    "create_server",
    "DEFAULT_PORT",
    "DEFAULT_BIND",
    # TLS
    "TLSConfig",
    "CertificateError",
    "ensure_certificate",
    "generate_certificate",
    "get_cert_fingerprint",
    # Credentials
    "Credential",
    "CredentialError",
    "generate_credential",
    "generate_password",
    # Auth
    "AuthError",
    "validate_basic_auth",
    # Errors
    "ConfigError",
    "StartupError",
]

"""Data and result models for keystore operations."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes


class IdentityRole(str, Enum):
    """TLS endpoint an identity keystore is issued for."""

    SERVER = "server"
    CLIENT = "client"

    @property
    def common_name(self) -> str:
        """Subject CN used for this role."""
        return "localhost" if self is IdentityRole.SERVER else "client"

    @property
    def alias(self) -> str:
        """Keystore alias (and file stem) for this role."""
        return self.value


class RequestScope(str, Enum):
    """Set of containers requested in one run."""

    ALL = "all"
    CLIENT = "client"
    SERVER = "server"


class WorkflowState(str, Enum):
    """Orchestrator state."""

    INIT = "init"
    VALIDATING_PREREQS = "validating_prereqs"
    ISSUING_SERVER = "issuing_server"
    ISSUING_CLIENT = "issuing_client"
    BUILDING_TRUSTSTORE = "building_truststore"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(frozen=True)
class ExtensionProfile:
    """X.509v3 extensions applied to an issued leaf certificate.

    key_usage holds OpenSSL flag names (digitalSignature, nonRepudiation, ...).
    subject_alt_names is an ordered tuple of (type, value) pairs where type is
    "DNS" or "IP".
    """

    key_usage: frozenset[str]
    extended_key_usage: str
    subject_alt_names: tuple[tuple[str, str], ...]


@dataclass
class CAMaterial:
    """CA certificate and key used to sign leaf certificates."""

    certificate: x509.Certificate
    private_key: CertificateIssuerPrivateKeyTypes = field(repr=False)


@dataclass
class IssuedCertificate:
    """Leaf certificate with its private key, still owned by the pipeline."""

    certificate: x509.Certificate
    private_key: RSAPrivateKey = field(repr=False)
    issuer_certificate: x509.Certificate
    serial_number: int
    validity_days: int


@dataclass
class KeystoreResult:
    """Result from identity keystore creation."""

    role: IdentityRole
    path: Path
    store_type: str
    alias: str
    subject: str
    issuer: str
    validity_days: int
    serial_number: int
    extended_key_usage: list[str]
    subject_alt_names: list[str]
    single_use: bool
    replaced_existing: bool
    listing: str


@dataclass
class TruststoreResult:
    """Result from truststore creation."""

    path: Path
    store_type: str
    alias: str
    subject: str
    replaced_existing: bool
    listing: str


@dataclass
class WorkflowResult:
    """Everything produced by one orchestrator run."""

    scope: RequestScope
    keystores: list[KeystoreResult] = field(default_factory=list)
    truststore: TruststoreResult | None = None

    @property
    def created_paths(self) -> list[Path]:
        """Container files written by this run, in creation order."""
        paths = [keystore.path for keystore in self.keystores]
        if self.truststore is not None:
            paths.append(self.truststore.path)
        return paths

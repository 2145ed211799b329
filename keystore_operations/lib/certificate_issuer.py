"""Certificate issuer: key pair generation and CA signing for one identity."""

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes

from .cert_utils import validate_certificate_issued_by
from .certificate_toolkit import CertificateToolkit, CryptographyCertificateToolkit
from .config import DistinguishedName, KeystoreConfig
from .errors import KeyGenerationFailed, SigningFailed
from .logging_config import LOGGER
from .models import ExtensionProfile, IssuedCertificate
from .serial_ledger import SerialLedger


class CertificateIssuer:
    """Issues CA-signed leaf certificates, advancing the CA serial ledger."""

    def __init__(
        self,
        config: KeystoreConfig,
        toolkit: CertificateToolkit | None = None,
        ledger: SerialLedger | None = None,
    ) -> None:
        """Initialize issuer.

        Args:
            config: Keystore configuration (key size, ledger location)
            toolkit: Certificate toolkit, in-process cryptography by default
            ledger: CA serial ledger, defaults to config.ledger_path
        """
        self.config = config
        self.toolkit = toolkit or CryptographyCertificateToolkit()
        self.ledger = ledger or SerialLedger(config.ledger_path)

    def issue(
        self,
        subject_dn: DistinguishedName,
        profile: ExtensionProfile,
        ca_cert: x509.Certificate,
        ca_key: CertificateIssuerPrivateKeyTypes,
        validity_days: int,
    ) -> IssuedCertificate:
        """Generate a key pair and CA-signed certificate for subject_dn.

        Args:
            subject_dn: Subject of the new certificate
            profile: Extensions to copy into the certificate
            ca_cert: CA certificate (issuer)
            ca_key: CA private key for signing
            validity_days: Certificate validity period in days

        Returns:
            IssuedCertificate holding the certificate and its private key

        Raises:
            KeyGenerationFailed: If the key pair or CSR cannot be generated
            SigningFailed: If the serial ledger or CA signing fails
        """
        subject = subject_dn.to_x509_name()
        try:
            key, csr = self.toolkit.generate_key_and_csr(subject, self.config.key_size)
        except (TypeError, ValueError) as e:
            raise KeyGenerationFailed(
                f"failed to create signing request for {subject.rfc4514_string()}: {e}"
            ) from e

        try:
            serial_number = self.ledger.next_serial()
        except (OSError, ValueError) as e:
            raise SigningFailed(f"cannot allocate serial number from {self.ledger.path}: {e}") from e

        try:
            cert = self.toolkit.sign_csr(
                csr=csr,
                ca_cert=ca_cert,
                ca_key=ca_key,
                profile=profile,
                serial_number=serial_number,
                validity_days=validity_days,
            )
        except (TypeError, ValueError) as e:
            raise SigningFailed(
                f"failed to sign certificate for {subject.rfc4514_string()}: {e}"
            ) from e
        if not validate_certificate_issued_by(cert, ca_cert):
            raise SigningFailed(f"issued certificate for {subject.rfc4514_string()} does not verify")

        LOGGER.info(
            "Issued %s (serial %X, %s)",
            subject.rfc4514_string(),
            serial_number,
            profile.extended_key_usage,
        )
        return IssuedCertificate(
            certificate=cert,
            private_key=key,
            issuer_certificate=ca_cert,
            serial_number=serial_number,
            validity_days=validity_days,
        )

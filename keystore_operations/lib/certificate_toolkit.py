"""Certificate toolkit: key pair + CSR generation, CSR signing, PKCS#12 export."""

from typing import Protocol

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes
from cryptography.hazmat.primitives.serialization import pkcs12

from .cert_utils import generate_private_key, private_key_matches_certificate
from .certificate_builder import CertificateBuilder
from .errors import BundleExportFailed
from .models import ExtensionProfile


class CertificateToolkit(Protocol):
    """Operations the issuer and packager need from a certificate toolkit."""

    def generate_key_and_csr(
        self, subject: x509.Name, key_size: int
    ) -> tuple[RSAPrivateKey, x509.CertificateSigningRequest]: ...

    def sign_csr(
        self,
        csr: x509.CertificateSigningRequest,
        ca_cert: x509.Certificate,
        ca_key: CertificateIssuerPrivateKeyTypes,
        profile: ExtensionProfile,
        serial_number: int,
        validity_days: int,
    ) -> x509.Certificate: ...

    def export_bundle(
        self,
        key: RSAPrivateKey,
        cert: x509.Certificate,
        ca_cert: x509.Certificate,
        alias: str,
        password: str,
    ) -> bytes: ...


class CryptographyCertificateToolkit:
    """In-process certificate toolkit backed by the cryptography library."""

    def generate_key_and_csr(
        self, subject: x509.Name, key_size: int
    ) -> tuple[RSAPrivateKey, x509.CertificateSigningRequest]:
        """Generate an RSA key and a CSR for subject signed with it."""
        key = generate_private_key(key_size)
        csr = x509.CertificateSigningRequestBuilder().subject_name(subject).sign(key, hashes.SHA256())
        return key, csr

    def sign_csr(
        self,
        csr: x509.CertificateSigningRequest,
        ca_cert: x509.Certificate,
        ca_key: CertificateIssuerPrivateKeyTypes,
        profile: ExtensionProfile,
        serial_number: int,
        validity_days: int,
    ) -> x509.Certificate:
        """Issue a certificate for csr with the profile's extensions."""
        return CertificateBuilder.build_leaf_certificate(
            csr=csr,
            issuer_cert=ca_cert,
            issuer_key=ca_key,
            profile=profile,
            serial_number=serial_number,
            validity_days=validity_days,
        )

    def export_bundle(
        self,
        key: RSAPrivateKey,
        cert: x509.Certificate,
        ca_cert: x509.Certificate,
        alias: str,
        password: str,
    ) -> bytes:
        """Export key, leaf and CA chain as a password protected PKCS#12 bundle.

        Raises:
            BundleExportFailed: If the key does not match the certificate or
                serialization fails
        """
        if not private_key_matches_certificate(key, cert):
            raise BundleExportFailed(f"private key does not match certificate for alias {alias}")
        try:
            return pkcs12.serialize_key_and_certificates(
                name=alias.encode(),
                key=key,
                cert=cert,
                cas=[ca_cert],
                encryption_algorithm=serialization.BestAvailableEncryption(password.encode()),
            )
        except (TypeError, ValueError) as e:
            raise BundleExportFailed(f"failed to export PKCS12 bundle for {alias}: {e}") from e

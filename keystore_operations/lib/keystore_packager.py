"""Keystore packager: identity keystores and trust-only truststores."""

from cryptography import x509

from .certificate_toolkit import CertificateToolkit, CryptographyCertificateToolkit
from .keystore_toolkit import KeystoreToolkit
from .models import IssuedCertificate

TRUSTSTORE_ALIAS = "ca"


class KeystorePackager:
    """Packages issued certificates into password protected containers."""

    def __init__(
        self,
        keystore_toolkit: KeystoreToolkit,
        certificate_toolkit: CertificateToolkit | None = None,
    ) -> None:
        self.keystore_toolkit = keystore_toolkit
        self.certificate_toolkit = certificate_toolkit or CryptographyCertificateToolkit()

    def package_identity(
        self,
        issued: IssuedCertificate,
        ca_cert: x509.Certificate,
        alias: str,
        password: str,
    ) -> bytes:
        """Build the keystore container for an issued identity.

        Exports {key, leaf, CA} as a PKCS#12 bundle under alias, then converts
        the bundle into the toolkit's container format with the same password.

        Raises:
            BundleExportFailed: If the bundle cannot be exported
            ContainerConversionFailed: If the bundle cannot be converted
        """
        bundle = self.certificate_toolkit.export_bundle(
            key=issued.private_key,
            cert=issued.certificate,
            ca_cert=ca_cert,
            alias=alias,
            password=password,
        )
        return self.keystore_toolkit.import_bundle(bundle, alias, password)

    def package_trust(
        self, ca_cert: x509.Certificate, password: str, alias: str = TRUSTSTORE_ALIAS
    ) -> bytes:
        """Build a trust-only container holding just the CA certificate.

        Raises:
            ContainerConversionFailed: If the container cannot be created
        """
        return self.keystore_toolkit.import_trusted_certificate(ca_cert, alias, password)

    def describe(self, container: bytes, password: str) -> str:
        """Human readable listing of a container, for operator verification."""
        return self.keystore_toolkit.describe(container, password)

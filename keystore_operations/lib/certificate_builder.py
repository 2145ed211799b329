"""Certificate builder for CA-signed leaf certificates."""

import ipaddress
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ed448, ed25519
from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes
from cryptography.x509.oid import ExtendedKeyUsageOID

from .cert_utils import extract_csr_public_key, extract_csr_subject, validate_csr_signature
from .models import ExtensionProfile

EXTENDED_KEY_USAGE_OIDS = {
    "serverAuth": ExtendedKeyUsageOID.SERVER_AUTH,
    "clientAuth": ExtendedKeyUsageOID.CLIENT_AUTH,
}


def _general_name(name_type: str, value: str) -> x509.GeneralName:
    if name_type == "DNS":
        return x509.DNSName(value)
    if name_type == "IP":
        return x509.IPAddress(ipaddress.ip_address(value))
    raise ValueError(f"unsupported subjectAltName type: {name_type}")


def _authority_key_identifier(issuer_cert: x509.Certificate) -> x509.AuthorityKeyIdentifier:
    """keyid,issuer: the issuer's key id, or its name and serial when none is available."""
    try:
        ski = issuer_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value
        return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski)
    except x509.ExtensionNotFound:
        pass
    try:
        return x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_cert.public_key())
    except (TypeError, ValueError):
        return x509.AuthorityKeyIdentifier(
            key_identifier=None,
            authority_cert_issuer=[x509.DirectoryName(issuer_cert.issuer)],
            authority_cert_serial_number=issuer_cert.serial_number,
        )


def _signature_hash(issuer_key: CertificateIssuerPrivateKeyTypes) -> hashes.HashAlgorithm | None:
    """SHA-256, except for EdDSA keys which sign without a separate digest."""
    if isinstance(issuer_key, (ed25519.Ed25519PrivateKey, ed448.Ed448PrivateKey)):
        return None
    return hashes.SHA256()

class CertificateBuilder:
    """Builds X.509 end-entity certificates signed by the CA."""

    @staticmethod
    def build_extensions(
        profile: ExtensionProfile, issuer_cert: x509.Certificate
    ) -> list[x509.ExtensionType]:
        """Translate an ExtensionProfile into x509 extension values.

        Order matches the OpenSSL v3_req section: authorityKeyIdentifier,
        basicConstraints, keyUsage, extendedKeyUsage, subjectAltName.
        """
        if profile.extended_key_usage not in EXTENDED_KEY_USAGE_OIDS:
            raise ValueError(f"unsupported extendedKeyUsage: {profile.extended_key_usage}")

        return [
            _authority_key_identifier(issuer_cert),
            x509.BasicConstraints(ca=False, path_length=None),
            x509.KeyUsage(
                digital_signature="digitalSignature" in profile.key_usage,
                content_commitment="nonRepudiation" in profile.key_usage,
                key_encipherment="keyEncipherment" in profile.key_usage,
                data_encipherment="dataEncipherment" in profile.key_usage,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            x509.ExtendedKeyUsage([EXTENDED_KEY_USAGE_OIDS[profile.extended_key_usage]]),
            x509.SubjectAlternativeName(
                [_general_name(name_type, value) for name_type, value in profile.subject_alt_names]
            ),
        ]

    @staticmethod
    def build_leaf_certificate(
        csr: x509.CertificateSigningRequest,
        issuer_cert: x509.Certificate,
        issuer_key: CertificateIssuerPrivateKeyTypes,
        profile: ExtensionProfile,
        serial_number: int,
        validity_days: int,
    ) -> x509.Certificate:
        """Build leaf certificate from CSR, signed by the CA.

        Subject and public key come from the CSR; extensions come from the
        profile, not from the CSR.

        Args:
            csr: Certificate signing request for the identity
            issuer_cert: CA certificate (issuer)
            issuer_key: CA private key for signing
            profile: Extensions to place in the certificate
            serial_number: Serial allocated from the CA ledger
            validity_days: Certificate validity period in days

        Returns:
            X.509 end-entity certificate signed by the CA

        Raises:
            ValueError: If CSR signature is invalid
        """
        if not validate_csr_signature(csr):
            raise ValueError("CSR signature validation failed")

        subject = extract_csr_subject(csr)
        public_key = extract_csr_public_key(csr)

        not_before = datetime.now(timezone.utc)
        not_after = not_before + timedelta(days=validity_days)

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer_cert.subject)
            .public_key(public_key)
            .serial_number(serial_number)
            .not_valid_before(not_before)
            .not_valid_after(not_after)
        )
        for extension in CertificateBuilder.build_extensions(profile, issuer_cert):
            builder = builder.add_extension(extension, critical=False)

        return builder.sign(issuer_key, _signature_hash(issuer_key))

"""Certificate utility functions for key generation, serialization, and inspection."""

import uuid

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes

SIGNING_KEY_TYPES = (
    rsa.RSAPrivateKey,
    ec.EllipticCurvePrivateKey,
    dsa.DSAPrivateKey,
    ed25519.Ed25519PrivateKey,
    ed448.Ed448PrivateKey,
)


def generate_private_key(key_size: int = 2048) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def deserialize_private_key(
    pem_data: bytes, password: str | None = None
) -> CertificateIssuerPrivateKeyTypes:
    """Deserialize a CA signing key from PEM bytes, decrypting it when a password is given.

    Any key type able to sign certificates is accepted (RSA, EC, DSA, Ed25519, Ed448).

    Raises:
        ValueError: If the PEM is malformed or holds a key that cannot sign certificates
        TypeError: If the key is encrypted and no password was given
    """
    key = serialization.load_pem_private_key(
        pem_data, password=password.encode() if password is not None else None
    )
    if not isinstance(key, SIGNING_KEY_TYPES):
        raise ValueError(f"unsupported CA private key type: {type(key).__name__}")
    return key


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def generate_serial_number() -> int:
    """Generate a random 128-bit certificate serial number from UUID4."""
    return uuid.uuid4().int


def format_serial_hex(serial_number: int) -> str:
    """Return serial number as colon separated uppercase hex (e.g. 3A:F2:B1)."""
    serial_hex = f"{serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons."""
    return format_serial_hex(cert.serial_number)


def private_key_matches_certificate(key: RSAPrivateKey, cert: x509.Certificate) -> bool:
    """Return True if the certificate carries the public half of key."""
    public_key = cert.public_key()
    if not isinstance(public_key, rsa.RSAPublicKey):
        return False
    return public_key.public_numbers() == key.public_key().public_numbers()


def validate_certificate_issued_by(cert: x509.Certificate, issuer_cert: x509.Certificate) -> bool:
    """Verify cert was signed by issuer_cert.

    Returns True if the signature and issuer name check out, False otherwise.
    """
    try:
        cert.verify_directly_issued_by(issuer_cert)
        return True
    except (ValueError, TypeError, InvalidSignature):
        return False


def extract_csr_subject(csr: x509.CertificateSigningRequest) -> x509.Name:
    """Extract subject DN from CSR."""
    return csr.subject


def extract_csr_public_key(
    csr: x509.CertificateSigningRequest,
) -> rsa.RSAPublicKey:
    """Extract public key from CSR.

    Args:
        csr: Certificate signing request

    Returns:
        RSA public key from CSR

    Raises:
        ValueError: If public key is not RSA type
    """
    public_key = csr.public_key()
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise ValueError("CSR public key must be RSA type")
    return public_key


def validate_csr_signature(csr: x509.CertificateSigningRequest) -> bool:
    """Verify CSR self-signature to prove private key possession."""
    try:
        return csr.is_signature_valid
    except ValueError:
        return False


def get_extended_key_usage_names(cert: x509.Certificate) -> list[str]:
    """Return the certificate's EKU entries as OpenSSL short names (serverAuth, ...)."""
    try:
        eku = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
    except x509.ExtensionNotFound:
        return []
    names = {
        x509.oid.ExtendedKeyUsageOID.SERVER_AUTH: "serverAuth",
        x509.oid.ExtendedKeyUsageOID.CLIENT_AUTH: "clientAuth",
    }
    return [names.get(usage, usage.dotted_string) for usage in eku]


def get_subject_alt_names(cert: x509.Certificate) -> list[str]:
    """Return SAN entries formatted as DNS:<name> / IP:<address>."""
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return []
    entries = [f"DNS:{name}" for name in san.get_values_for_type(x509.DNSName)]
    entries.extend(f"IP:{address}" for address in san.get_values_for_type(x509.IPAddress))
    return entries

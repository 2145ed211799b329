"""Test fixtures for keystore_operations tests."""

import subprocess
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.serialization import pkcs12

from keystore_operations.lib.cert_utils import generate_private_key, serialize_certificate
from keystore_operations.lib.config import DistinguishedName, KeystoreConfig
from keystore_operations.lib.keystore_toolkit import Pkcs12KeystoreToolkit
from keystore_operations.lib.models import CAMaterial


@pytest.fixture
def temp_output_dir(tmp_path: Path) -> Path:
    """Return temporary directory for keystore output."""
    output_dir = tmp_path / "out"
    output_dir.mkdir()
    return output_dir


@pytest.fixture
def ca_key() -> RSAPrivateKey:
    """Generate RSA private key for the test CA."""
    return generate_private_key(key_size=2048)


@pytest.fixture
def ca_dn() -> DistinguishedName:
    """Return test CA distinguished name."""
    return DistinguishedName(
        country="US",
        state="State",
        locality="City",
        organization="Test Org",
        organizational_unit="Test Unit",
        common_name="Test Dev CA",
    )


@pytest.fixture
def ca_cert(ca_key: RSAPrivateKey, ca_dn: DistinguishedName) -> x509.Certificate:
    """Generate self-signed CA certificate with a SubjectKeyIdentifier."""
    subject = ca_dn.to_x509_name()
    not_before = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(ca_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(ca_key.public_key()), critical=False
        )
        .sign(ca_key, hashes.SHA256())
    )


@pytest.fixture
def ca_material(ca_cert: x509.Certificate, ca_key: RSAPrivateKey) -> CAMaterial:
    """Return loaded CA material."""
    return CAMaterial(certificate=ca_cert, private_key=ca_key)


@pytest.fixture
def ca_files_on_disk(
    tmp_path: Path,
    ca_key: RSAPrivateKey,
    ca_cert: x509.Certificate,
) -> Path:
    """Write CA files to disk and return their directory.

    Creates:
        {tmp}/ca/ca-cert.pem
        {tmp}/ca/ca-key.pem
    """
    ca_dir = tmp_path / "ca"
    ca_dir.mkdir()
    (ca_dir / "ca-cert.pem").write_bytes(serialize_certificate(ca_cert))
    (ca_dir / "ca-key.pem").write_bytes(
        ca_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return ca_dir


@pytest.fixture
def keystore_config(ca_files_on_disk: Path, temp_output_dir: Path) -> KeystoreConfig:
    """Return test configuration writing in-process PKCS12 containers."""
    return KeystoreConfig(
        ca_cert_path=ca_files_on_disk / "ca-cert.pem",
        ca_key_path=ca_files_on_disk / "ca-key.pem",
        output_dir=temp_output_dir,
        store_type="PKCS12",
        key_size=2048,
    )


@pytest.fixture
def pkcs12_toolkit() -> Pkcs12KeystoreToolkit:
    """Return in-process PKCS12 keystore toolkit."""
    return Pkcs12KeystoreToolkit()


def _option(command: list[str], name: str) -> str:
    return command[command.index(name) + 1]


def _fake_keytool_importcert(command: list[str], **kwargs) -> subprocess.CompletedProcess:
    """Write the trusted certificate container keytool -importcert would create."""
    assert command[1] == "-importcert", f"unexpected keytool command {command[1]}"
    cert = x509.load_pem_x509_certificate(Path(_option(command, "-file")).read_bytes())
    password = _option(command, "-storepass").encode()
    Path(_option(command, "-keystore")).write_bytes(
        pkcs12.serialize_key_and_certificates(
            name=None,
            key=None,
            cert=None,
            cas=[pkcs12.PKCS12Certificate(cert, _option(command, "-alias").encode())],
            encryption_algorithm=serialization.BestAvailableEncryption(password),
        )
    )
    return subprocess.CompletedProcess(command, 0, stdout="", stderr="")


@pytest.fixture
def keytool_stub():
    """Stand in for keytool when building PKCS12 truststores.

    keytool is reported on PATH and -importcert writes a trust-only
    container in-process, so truststore workflows run without a JDK.
    """
    with (
        patch(
            "keystore_operations.lib.keystore_manager.shutil.which",
            side_effect=lambda tool: f"/usr/bin/{tool}",
        ),
        patch(
            "keystore_operations.lib.keystore_toolkit.subprocess.run",
            side_effect=_fake_keytool_importcert,
        ) as run,
    ):
        yield run

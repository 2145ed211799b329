"""Tests for keystore toolkits."""

import shutil
import subprocess
from unittest.mock import patch

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from keystore_operations.lib.certificate_toolkit import CryptographyCertificateToolkit
from keystore_operations.lib.config import KeystoreConfig, build_dn_from_config
from keystore_operations.lib.errors import ContainerConversionFailed
from keystore_operations.lib.extension_profile import build_profile
from keystore_operations.lib.keystore_toolkit import (
    PRIVATE_KEY_ENTRY,
    TRUSTED_CERT_ENTRY,
    KeytoolKeystoreToolkit,
    Pkcs12KeystoreToolkit,
    create_keystore_toolkit,
)
from keystore_operations.lib.models import IdentityRole

PASSWORD = "changeit"

requires_keytool = pytest.mark.skipif(
    shutil.which("keytool") is None, reason="keytool not installed"
)


@pytest.fixture
def server_bundle(ca_cert: x509.Certificate, ca_key: RSAPrivateKey) -> bytes:
    """PKCS12 bundle {key, server cert, CA} under alias server."""
    toolkit = CryptographyCertificateToolkit()
    key, csr = toolkit.generate_key_and_csr(
        build_dn_from_config(KeystoreConfig(), "localhost").to_x509_name(), 2048
    )
    cert = toolkit.sign_csr(csr, ca_cert, ca_key, build_profile(IdentityRole.SERVER), 0x10, 365)
    return toolkit.export_bundle(key, cert, ca_cert, "server", PASSWORD)


class TestPkcs12ImportBundle:
    """Tests for Pkcs12KeystoreToolkit.import_bundle."""

    def test_single_private_key_entry_with_chain(
        self,
        pkcs12_toolkit: Pkcs12KeystoreToolkit,
        server_bundle: bytes,
        ca_cert: x509.Certificate,
    ) -> None:
        """Keystore holds one key entry under alias with leaf + CA chain."""
        container = pkcs12_toolkit.import_bundle(server_bundle, "server", PASSWORD)

        entries = pkcs12_toolkit.list_entries(container, PASSWORD)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.alias == "server"
        assert entry.entry_type == PRIVATE_KEY_ENTRY
        assert entry.has_private_key is True
        assert len(entry.chain) == 2
        assert entry.chain[1] == ca_cert

    def test_alias_is_reassigned(
        self, pkcs12_toolkit: Pkcs12KeystoreToolkit, server_bundle: bytes
    ) -> None:
        """The key entry takes the alias passed to import_bundle."""
        container = pkcs12_toolkit.import_bundle(server_bundle, "renamed", PASSWORD)
        loaded = pkcs12.load_pkcs12(container, PASSWORD.encode())
        assert loaded.cert is not None
        assert loaded.cert.friendly_name == b"renamed"

    def test_wrong_password_raises(
        self, pkcs12_toolkit: Pkcs12KeystoreToolkit, server_bundle: bytes
    ) -> None:
        """Bundle that does not open with the password fails conversion."""
        with pytest.raises(ContainerConversionFailed, match="cannot open PKCS12 bundle"):
            pkcs12_toolkit.import_bundle(server_bundle, "server", "wrong-password")

    def test_bundle_without_key_raises(
        self, pkcs12_toolkit: Pkcs12KeystoreToolkit, ca_cert: x509.Certificate
    ) -> None:
        """A certificate-only bundle cannot become an identity keystore."""
        trust_only = pkcs12.serialize_key_and_certificates(
            name=None,
            key=None,
            cert=None,
            cas=[ca_cert],
            encryption_algorithm=serialization.BestAvailableEncryption(PASSWORD.encode()),
        )
        with pytest.raises(ContainerConversionFailed, match="has no key entry"):
            pkcs12_toolkit.import_bundle(trust_only, "server", PASSWORD)


@pytest.mark.usefixtures("keytool_stub")
class TestPkcs12Truststore:
    """Tests for Pkcs12KeystoreToolkit.import_trusted_certificate."""

    def test_built_with_keytool_importcert(
        self,
        pkcs12_toolkit: Pkcs12KeystoreToolkit,
        ca_cert: x509.Certificate,
        keytool_stub,
    ) -> None:
        """keytool writes the PKCS12 truststore so the CA carries the JDK trust attribute."""
        pkcs12_toolkit.import_trusted_certificate(ca_cert, "ca", PASSWORD)

        [call] = keytool_stub.call_args_list
        command = call.args[0]
        assert command[:3] == ["keytool", "-importcert", "-noprompt"]
        assert command[command.index("-alias") + 1] == "ca"
        assert command[command.index("-storetype") + 1] == "PKCS12"
        assert command[command.index("-keystore") + 1].endswith("truststore.p12")

    def test_exactly_one_trusted_entry(
        self, pkcs12_toolkit: Pkcs12KeystoreToolkit, ca_cert: x509.Certificate
    ) -> None:
        """Truststore holds only the CA certificate, aliased ca, with no key."""
        container = pkcs12_toolkit.import_trusted_certificate(ca_cert, "ca", PASSWORD)

        entries = pkcs12_toolkit.list_entries(container, PASSWORD)
        assert len(entries) == 1
        assert entries[0].alias == "ca"
        assert entries[0].entry_type == TRUSTED_CERT_ENTRY
        assert entries[0].has_private_key is False
        assert entries[0].certificate == ca_cert

        loaded = pkcs12.load_pkcs12(container, PASSWORD.encode())
        assert loaded.key is None

    def test_list_entries_wrong_password(
        self, pkcs12_toolkit: Pkcs12KeystoreToolkit, ca_cert: x509.Certificate
    ) -> None:
        """Listing with the wrong password raises ContainerConversionFailed."""
        container = pkcs12_toolkit.import_trusted_certificate(ca_cert, "ca", PASSWORD)
        with pytest.raises(ContainerConversionFailed):
            pkcs12_toolkit.list_entries(container, "nope")


class TestPkcs12Describe:
    """Tests for Pkcs12KeystoreToolkit.describe."""

    def test_identity_listing(
        self, pkcs12_toolkit: Pkcs12KeystoreToolkit, server_bundle: bytes
    ) -> None:
        """Identity listing shows alias, entry type, chain length and owner."""
        container = pkcs12_toolkit.import_bundle(server_bundle, "server", PASSWORD)
        listing = pkcs12_toolkit.describe(container, PASSWORD)

        assert "Keystore type: PKCS12" in listing
        assert "Your keystore contains 1 entry" in listing
        assert "Alias name: server" in listing
        assert f"Entry type: {PRIVATE_KEY_ENTRY}" in listing
        assert "Certificate chain length: 2" in listing
        assert "Owner: C=US,ST=State,L=City,O=MyOrg,OU=Development,CN=localhost" in listing
        assert "Issuer: C=US,ST=State,L=City,O=Test Org,OU=Test Unit,CN=Test Dev CA" in listing

    @pytest.mark.usefixtures("keytool_stub")
    def test_truststore_listing(
        self, pkcs12_toolkit: Pkcs12KeystoreToolkit, ca_cert: x509.Certificate
    ) -> None:
        """Truststore listing shows one trustedCertEntry."""
        container = pkcs12_toolkit.import_trusted_certificate(ca_cert, "ca", PASSWORD)
        listing = pkcs12_toolkit.describe(container, PASSWORD)

        assert "Alias name: ca" in listing
        assert f"Entry type: {TRUSTED_CERT_ENTRY}" in listing
        assert "Certificate chain length" not in listing


class TestKeytoolRun:
    """Tests for KeytoolKeystoreToolkit error mapping."""

    def test_missing_keytool_raises(self) -> None:
        """A keytool binary that does not exist fails conversion."""
        toolkit = KeytoolKeystoreToolkit(keytool="definitely-not-keytool")
        with pytest.raises(ContainerConversionFailed, match="keytool not found"):
            toolkit.describe(b"data", PASSWORD)

    def test_pkcs12_truststore_without_keytool_raises(self, ca_cert: x509.Certificate) -> None:
        """PKCS12 truststores cannot be built without keytool."""
        toolkit = Pkcs12KeystoreToolkit(keytool="definitely-not-keytool")
        with pytest.raises(ContainerConversionFailed, match="keytool not found"):
            toolkit.import_trusted_certificate(ca_cert, "ca", PASSWORD)

    def test_non_zero_exit_raises(self, server_bundle: bytes) -> None:
        """keytool stderr is carried into the error message."""
        error = subprocess.CalledProcessError(
            1, ["keytool"], output="", stderr="keystore password was incorrect"
        )
        with (
            patch(
                "keystore_operations.lib.keystore_toolkit.subprocess.run", side_effect=error
            ),
            pytest.raises(ContainerConversionFailed, match="password was incorrect"),
        ):
            KeytoolKeystoreToolkit().import_bundle(server_bundle, "server", PASSWORD)

    def test_import_bundle_arguments(self, server_bundle: bytes) -> None:
        """import_bundle asks keytool for a JKS copy of alias only."""
        with patch("keystore_operations.lib.keystore_toolkit.subprocess.run") as mock_run:

            def fake_run(command, **kwargs):
                destination = command[command.index("-destkeystore") + 1]
                with open(destination, "wb") as handle:
                    handle.write(b"jks-bytes")
                return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

            mock_run.side_effect = fake_run
            container = KeytoolKeystoreToolkit().import_bundle(server_bundle, "server", PASSWORD)

        assert container == b"jks-bytes"
        command = mock_run.call_args.args[0]
        assert command[:2] == ["keytool", "-importkeystore"]
        assert command[command.index("-srcalias") + 1] == "server"
        assert command[command.index("-deststoretype") + 1] == "JKS"
        assert "-noprompt" in command


@requires_keytool
class TestKeytoolIntegration:
    """Round trips through a real keytool."""

    def test_identity_keystore(self, server_bundle: bytes) -> None:
        """JKS identity keystore lists one PrivateKeyEntry for alias server."""
        toolkit = KeytoolKeystoreToolkit()
        container = toolkit.import_bundle(server_bundle, "server", PASSWORD)
        listing = toolkit.describe(container, PASSWORD)

        assert "Alias name: server" in listing
        assert PRIVATE_KEY_ENTRY in listing

    def test_truststore(self, ca_cert: x509.Certificate) -> None:
        """JKS truststore lists one trustedCertEntry for alias ca."""
        toolkit = KeytoolKeystoreToolkit()
        container = toolkit.import_trusted_certificate(ca_cert, "ca", PASSWORD)
        listing = toolkit.describe(container, PASSWORD)

        assert "Alias name: ca" in listing
        assert TRUSTED_CERT_ENTRY in listing
        assert PRIVATE_KEY_ENTRY not in listing

    def test_pkcs12_truststore_trusted_by_java(
        self, pkcs12_toolkit: Pkcs12KeystoreToolkit, ca_cert: x509.Certificate
    ) -> None:
        """keytool itself lists the PKCS12 truststore with one trustedCertEntry."""
        container = pkcs12_toolkit.import_trusted_certificate(ca_cert, "ca", PASSWORD)
        listing = KeytoolKeystoreToolkit(store_type="PKCS12").describe(container, PASSWORD)

        assert "Your keystore contains 1 entry" in listing
        assert "Alias name: ca" in listing
        assert TRUSTED_CERT_ENTRY in listing
        assert pkcs12_toolkit.list_entries(container, PASSWORD)[0].certificate == ca_cert


class TestCreateKeystoreToolkit:
    """Tests for create_keystore_toolkit."""

    @pytest.mark.parametrize(
        ("store_type", "expected"),
        [
            ("JKS", KeytoolKeystoreToolkit),
            ("PKCS12", Pkcs12KeystoreToolkit),
            ("pkcs12", Pkcs12KeystoreToolkit),
        ],
    )
    def test_known_store_types(self, store_type: str, expected: type) -> None:
        """Store type names are case insensitive."""
        assert isinstance(create_keystore_toolkit(store_type), expected)

    def test_keytool_pkcs12_extension(self) -> None:
        """keytool toolkits take their extension from the store type."""
        assert KeytoolKeystoreToolkit(store_type="pkcs12").file_extension == "p12"
        assert KeytoolKeystoreToolkit().file_extension == "jks"

    def test_unknown_store_type(self) -> None:
        """Unknown store types raise ValueError."""
        with pytest.raises(ValueError, match="unsupported store type"):
            create_keystore_toolkit("JCEKS")

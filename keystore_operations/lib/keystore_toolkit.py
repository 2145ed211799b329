"""Keystore toolkits: turn PKCS#12 bundles and CA certificates into containers."""

import subprocess
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from .cert_utils import get_certificate_serial_hex, serialize_certificate
from .errors import ContainerConversionFailed
from .file_utils import ephemeral_workdir
from .logging_config import LOGGER

FILE_EXTENSIONS = {"JKS": "jks", "PKCS12": "p12"}
PRIVATE_KEY_ENTRY = "PrivateKeyEntry"
TRUSTED_CERT_ENTRY = "trustedCertEntry"


class KeystoreToolkit(Protocol):
    """Operations the packager needs from a keystore toolkit."""

    store_type: str
    file_extension: str
    required_tools: tuple[str, ...]
    truststore_tools: tuple[str, ...]

    def import_bundle(self, bundle: bytes, alias: str, password: str) -> bytes: ...

    def import_trusted_certificate(
        self, cert: x509.Certificate, alias: str, password: str
    ) -> bytes: ...

    def describe(self, container: bytes, password: str) -> str: ...


@dataclass
class KeystoreEntry:
    """One entry of a PKCS#12 container as keytool would list it."""

    alias: str
    entry_type: str
    has_private_key: bool
    chain: list[x509.Certificate]

    @property
    def certificate(self) -> x509.Certificate:
        return self.chain[0]


def _format_validity(not_before: datetime, not_after: datetime) -> str:
    return f"Valid from: {not_before.isoformat()} until: {not_after.isoformat()}"


class Pkcs12KeystoreToolkit:
    """PKCS#12 keystore toolkit backed by the cryptography library.

    Identity keystores are built in-process. Truststores are written by
    keytool: the JDK only trusts certificate bags carrying its
    trusted-key-usage attribute, which cryptography cannot emit.
    """

    store_type = "PKCS12"
    file_extension = "p12"
    required_tools: tuple[str, ...] = ()
    truststore_tools: tuple[str, ...] = ("keytool",)

    def __init__(self, keytool: str = "keytool") -> None:
        self.truststore_builder = KeytoolKeystoreToolkit(keytool, store_type=self.store_type)

    def import_bundle(self, bundle: bytes, alias: str, password: str) -> bytes:
        """Re-encrypt a PKCS#12 bundle as the keystore entry named alias.

        Raises:
            ContainerConversionFailed: If the bundle cannot be opened with
                password or holds no key/certificate pair
        """
        try:
            key, cert, additional_certs = pkcs12.load_key_and_certificates(
                bundle, password.encode()
            )
        except ValueError as e:
            raise ContainerConversionFailed(f"cannot open PKCS12 bundle for {alias}: {e}") from e
        if key is None or cert is None:
            raise ContainerConversionFailed(f"PKCS12 bundle for {alias} has no key entry")

        return pkcs12.serialize_key_and_certificates(
            name=alias.encode(),
            key=key,
            cert=cert,
            cas=additional_certs,
            encryption_algorithm=serialization.BestAvailableEncryption(password.encode()),
        )

    def import_trusted_certificate(
        self, cert: x509.Certificate, alias: str, password: str
    ) -> bytes:
        """Create a PKCS#12 truststore holding cert as a trusted entry under alias.

        Raises:
            ContainerConversionFailed: If keytool is missing or fails
        """
        return self.truststore_builder.import_trusted_certificate(cert, alias, password)

    def list_entries(self, container: bytes, password: str) -> list[KeystoreEntry]:
        """Return the container's entries.

        A key with its certificate forms one PrivateKeyEntry whose chain also
        holds the additional certificates. Without a key, every certificate
        is its own trustedCertEntry.
        """
        try:
            loaded = pkcs12.load_pkcs12(container, password.encode())
        except ValueError as e:
            raise ContainerConversionFailed(f"cannot open PKCS12 container: {e}") from e

        if loaded.key is not None and loaded.cert is not None:
            alias = (loaded.cert.friendly_name or b"").decode()
            chain = [loaded.cert.certificate]
            chain.extend(extra.certificate for extra in loaded.additional_certs)
            return [KeystoreEntry(alias, PRIVATE_KEY_ENTRY, True, chain)]

        certs = list(loaded.additional_certs)
        if loaded.cert is not None:
            certs.insert(0, loaded.cert)
        return [
            KeystoreEntry(
                alias=(entry.friendly_name or str(index).encode()).decode(),
                entry_type=TRUSTED_CERT_ENTRY,
                has_private_key=False,
                chain=[entry.certificate],
            )
            for index, entry in enumerate(certs)
        ]

    def describe(self, container: bytes, password: str) -> str:
        """Render a keytool -list -v style listing of the container."""
        entries = self.list_entries(container, password)
        noun = "entry" if len(entries) == 1 else "entries"
        lines = [
            f"Keystore type: {self.store_type}",
            f"Your keystore contains {len(entries)} {noun}",
        ]
        for entry in entries:
            cert = entry.certificate
            lines.extend(
                [
                    "",
                    f"Alias name: {entry.alias}",
                    f"Entry type: {entry.entry_type}",
                ]
            )
            if entry.has_private_key:
                lines.append(f"Certificate chain length: {len(entry.chain)}")
            lines.extend(
                [
                    f"Owner: {cert.subject.rfc4514_string()}",
                    f"Issuer: {cert.issuer.rfc4514_string()}",
                    f"Serial number: {get_certificate_serial_hex(cert)}",
                    _format_validity(cert.not_valid_before_utc, cert.not_valid_after_utc),
                ]
            )
        return "\n".join(lines)


class KeytoolKeystoreToolkit:
    """Keystore toolkit that drives the JDK keytool program, JKS by default."""

    required_tools: tuple[str, ...] = ("keytool",)
    truststore_tools: tuple[str, ...] = ("keytool",)

    def __init__(self, keytool: str = "keytool", store_type: str = "JKS") -> None:
        """Initialize keytool toolkit.

        Raises:
            ValueError: If store_type is not JKS or PKCS12
        """
        self.keytool = keytool
        self.store_type = store_type.upper()
        try:
            self.file_extension = FILE_EXTENSIONS[self.store_type]
        except KeyError:
            raise ValueError(
                f"unsupported store type {store_type!r} (expected one of {sorted(FILE_EXTENSIONS)})"
            ) from None

    def _run(self, *args: str) -> str:
        """Run keytool and return its stdout.

        Raises:
            ContainerConversionFailed: If keytool is missing or exits non-zero
        """
        command = [self.keytool, *args]
        LOGGER.debug("Running keytool %s", args[0])
        try:
            completed = subprocess.run(command, check=True, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise ContainerConversionFailed(f"keytool not found: {self.keytool}") from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip()
            raise ContainerConversionFailed(f"keytool {args[0]} failed: {detail}") from e
        return completed.stdout

    def import_bundle(self, bundle: bytes, alias: str, password: str) -> bytes:
        """Convert a PKCS#12 bundle into a keystore of store_type holding alias."""
        with ephemeral_workdir(f"{alias}-keytool-") as workdir:
            source = workdir / f"temp_{alias}.p12"
            destination = workdir / f"{alias}.{self.file_extension}"
            source.write_bytes(bundle)
            self._run(
                "-importkeystore",
                "-srckeystore", str(source),
                "-srcstoretype", "PKCS12",
                "-srcstorepass", password,
                "-destkeystore", str(destination),
                "-deststoretype", self.store_type,
                "-deststorepass", password,
                "-srcalias", alias,
                "-noprompt",
            )
            return destination.read_bytes()

    def import_trusted_certificate(
        self, cert: x509.Certificate, alias: str, password: str
    ) -> bytes:
        """Create a truststore of store_type with cert as a trusted entry under alias."""
        with ephemeral_workdir(f"{alias}-keytool-") as workdir:
            cert_file = workdir / f"{alias}.pem"
            destination = workdir / f"truststore.{self.file_extension}"
            cert_file.write_bytes(serialize_certificate(cert))
            self._run(
                "-importcert",
                "-noprompt",
                "-alias", alias,
                "-file", str(cert_file),
                "-keystore", str(destination),
                "-storetype", self.store_type,
                "-storepass", password,
            )
            return destination.read_bytes()

    def describe(self, container: bytes, password: str) -> str:
        """Return keytool -list -v output for the container."""
        with ephemeral_workdir("list-keytool-") as workdir:
            keystore = workdir / f"keystore.{self.file_extension}"
            keystore.write_bytes(container)
            return self._run(
                "-list",
                "-v",
                "-keystore", str(keystore),
                "-storetype", self.store_type,
                "-storepass", password,
            ).strip()


def create_keystore_toolkit(store_type: str) -> KeystoreToolkit:
    """Return the toolkit producing store_type containers.

    Raises:
        ValueError: If store_type is not JKS or PKCS12
    """
    if store_type.upper() == Pkcs12KeystoreToolkit.store_type:
        return Pkcs12KeystoreToolkit()
    return KeytoolKeystoreToolkit(store_type=store_type)

"""Keystore manager orchestrating issuance and packaging of mTLS containers."""

import os
import shutil
from pathlib import Path

from .cert_utils import (
    deserialize_certificate,
    deserialize_private_key,
    get_extended_key_usage_names,
    get_subject_alt_names,
)
from .certificate_issuer import CertificateIssuer
from .certificate_toolkit import CertificateToolkit, CryptographyCertificateToolkit
from .config import KeystoreConfig, build_dn_from_config
from .errors import PackagingError, PrerequisiteMissing, SigningFailed
from .extension_profile import build_profile
from .file_utils import atomic_write_bytes
from .keystore_packager import TRUSTSTORE_ALIAS, KeystorePackager
from .keystore_toolkit import KeystoreToolkit, create_keystore_toolkit
from .logging_config import LOGGER
from .models import (
    CAMaterial,
    IdentityRole,
    KeystoreResult,
    RequestScope,
    TruststoreResult,
    WorkflowResult,
    WorkflowState,
)
from .serial_ledger import SerialLedger

TRUSTSTORE_STEM = "truststore"


class KeystoreManager:
    """Runs the server/client/truststore workflow against a pre-existing CA."""

    def __init__(
        self,
        config: KeystoreConfig,
        certificate_toolkit: CertificateToolkit | None = None,
        keystore_toolkit: KeystoreToolkit | None = None,
    ) -> None:
        """Initialize keystore manager with configuration.

        Args:
            config: Keystore configuration with paths, password and key policy
            certificate_toolkit: Certificate toolkit, in-process by default
            keystore_toolkit: Keystore toolkit, chosen from config.store_type by default
        """
        self.config = config
        self.certificate_toolkit = certificate_toolkit or CryptographyCertificateToolkit()
        self.keystore_toolkit = keystore_toolkit or create_keystore_toolkit(config.store_type)
        self.issuer = CertificateIssuer(
            config, self.certificate_toolkit, SerialLedger(config.ledger_path)
        )
        self.packager = KeystorePackager(self.keystore_toolkit, self.certificate_toolkit)
        self.state = WorkflowState.INIT

    def container_path(self, stem: str) -> Path:
        """Output path for a container named stem."""
        return self.config.output_dir / f"{stem}.{self.keystore_toolkit.file_extension}"

    def validate_prerequisites(self, scope: RequestScope = RequestScope.ALL) -> None:
        """Check external tools and CA files before any cryptographic work.

        Tools the toolkit needs only for truststores are required when scope
        includes the truststore.

        Raises:
            PrerequisiteMissing: If a tool is not on PATH or a CA file is
                missing or unreadable
        """
        tools = list(self.keystore_toolkit.required_tools)
        if scope is RequestScope.ALL:
            tools.extend(self.keystore_toolkit.truststore_tools)
        for tool in dict.fromkeys(tools):
            if shutil.which(tool) is None:
                raise PrerequisiteMissing(
                    f"{tool} not found. Please ensure it is installed and on PATH"
                )

        for label, path in (
            ("CA certificate", self.config.ca_cert_path),
            ("CA private key", self.config.ca_key_path),
        ):
            if not path.is_file():
                raise PrerequisiteMissing(f"{label} file not found: {path}")
            if not os.access(path, os.R_OK):
                raise PrerequisiteMissing(f"{label} file not readable: {path}")

    def load_ca_material(self) -> CAMaterial:
        """Parse the CA certificate and private key.

        Raises:
            SigningFailed: If either file cannot be parsed
        """
        try:
            ca_cert = deserialize_certificate(self.config.ca_cert_path.read_bytes())
        except (OSError, ValueError) as e:
            raise SigningFailed(f"CA certificate unreadable: {self.config.ca_cert_path}: {e}") from e
        try:
            ca_key = deserialize_private_key(
                self.config.ca_key_path.read_bytes(), self.config.ca_key_password
            )
        except (OSError, TypeError, ValueError) as e:
            raise SigningFailed(f"CA private key unreadable: {self.config.ca_key_path}: {e}") from e
        return CAMaterial(certificate=ca_cert, private_key=ca_key)

    def _write_container(self, path: Path, container: bytes) -> bool:
        """Replace path with container, returning whether a file was replaced."""
        replaced = path.exists()
        if replaced:
            LOGGER.warning("%s already exists. Replacing it...", path)
        atomic_write_bytes(path, container)
        return replaced

    def _describe(self, container: bytes) -> str:
        try:
            return self.packager.describe(container, self.config.password)
        except PackagingError as e:
            LOGGER.warning("Could not list container contents: %s", e)
            return ""

    def create_identity_keystore(
        self, role: IdentityRole, ca: CAMaterial, single_use: bool = False
    ) -> KeystoreResult:
        """Issue a certificate for role and write it as <role>.<ext>.

        Args:
            role: Server or client identity
            ca: Loaded CA material
            single_use: Issue the client certificate with serverAuth EKU

        Returns:
            KeystoreResult describing the written keystore
        """
        path = self.container_path(role.value)
        LOGGER.info("Creating keystore: %s (%s)", path.name, role.value)

        profile = build_profile(role, single_use)
        if role is IdentityRole.CLIENT and single_use:
            LOGGER.warning("Creating single-use client certificate with serverAuth EKU...")

        subject_dn = build_dn_from_config(self.config, role.common_name)
        issued = self.issuer.issue(
            subject_dn=subject_dn,
            profile=profile,
            ca_cert=ca.certificate,
            ca_key=ca.private_key,
            validity_days=self.config.validity_days,
        )

        container = self.packager.package_identity(
            issued, ca.certificate, alias=role.alias, password=self.config.password
        )
        replaced = self._write_container(path, container)

        return KeystoreResult(
            role=role,
            path=path,
            store_type=self.keystore_toolkit.store_type,
            alias=role.alias,
            subject=issued.certificate.subject.rfc4514_string(),
            issuer=issued.certificate.issuer.rfc4514_string(),
            validity_days=issued.validity_days,
            serial_number=issued.serial_number,
            extended_key_usage=get_extended_key_usage_names(issued.certificate),
            subject_alt_names=get_subject_alt_names(issued.certificate),
            single_use=role is IdentityRole.CLIENT and single_use,
            replaced_existing=replaced,
            listing=self._describe(container),
        )

    def create_truststore(self, ca: CAMaterial) -> TruststoreResult:
        """Write truststore.<ext> holding only the CA certificate under alias "ca"."""
        path = self.container_path(TRUSTSTORE_STEM)
        LOGGER.info("Creating truststore: %s", path.name)

        container = self.packager.package_trust(ca.certificate, self.config.password)
        replaced = self._write_container(path, container)

        return TruststoreResult(
            path=path,
            store_type=self.keystore_toolkit.store_type,
            alias=TRUSTSTORE_ALIAS,
            subject=ca.certificate.subject.rfc4514_string(),
            replaced_existing=replaced,
            listing=self._describe(container),
        )

    def run(self, scope: RequestScope = RequestScope.ALL, single_use: bool = False) -> WorkflowResult:
        """Run the workflow for scope, aborting on the first failure.

        Server, client and truststore steps run in that order when selected.
        A failing step leaves state ABORTED and re-raises; files written by
        earlier steps are kept.

        Args:
            scope: Which containers to create
            single_use: Issue the client certificate with serverAuth EKU

        Returns:
            WorkflowResult with one entry per created container

        Raises:
            KeystoreError: On any prerequisite, issuance or packaging failure
        """
        result = WorkflowResult(scope=scope)
        if single_use and scope is RequestScope.SERVER:
            LOGGER.warning("--single-use only applies to client certificates; ignoring it")

        try:
            self.state = WorkflowState.VALIDATING_PREREQS
            self.validate_prerequisites(scope)
            ca = self.load_ca_material()

            if scope in (RequestScope.ALL, RequestScope.SERVER):
                self.state = WorkflowState.ISSUING_SERVER
                result.keystores.append(self.create_identity_keystore(IdentityRole.SERVER, ca))

            if scope in (RequestScope.ALL, RequestScope.CLIENT):
                self.state = WorkflowState.ISSUING_CLIENT
                result.keystores.append(
                    self.create_identity_keystore(IdentityRole.CLIENT, ca, single_use)
                )

            if scope is RequestScope.ALL:
                self.state = WorkflowState.BUILDING_TRUSTSTORE
                result.truststore = self.create_truststore(ca)
        except Exception:
            LOGGER.error("Aborted while %s", self.state.value.replace("_", " "))
            self.state = WorkflowState.ABORTED
            raise

        self.state = WorkflowState.DONE
        return result

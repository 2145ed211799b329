"""Keystore configuration dataclasses."""

from dataclasses import dataclass
from pathlib import Path

from cryptography import x509
from cryptography.x509 import oid


@dataclass
class KeystoreConfig:
    """Keystore bootstrap configuration, passed explicitly to every component."""

    password: str = "changeit"
    validity_days: int = 365
    key_size: int = 2048
    country: str = "US"
    state: str = "State"
    locality: str = "City"
    organization: str = "MyOrg"
    organizational_unit: str = "Development"
    ca_cert_path: Path = Path("./ca-cert.pem")
    ca_key_path: Path = Path("./ca-key.pem")
    ca_key_password: str | None = None
    serial_path: Path | None = None
    output_dir: Path = Path(".")
    store_type: str = "JKS"

    @property
    def ledger_path(self) -> Path:
        """Serial ledger location, next to the CA certificate unless overridden."""
        if self.serial_path is not None:
            return self.serial_path
        return self.ca_cert_path.with_suffix(".srl")


@dataclass
class DistinguishedName:
    """X.509 Subject Distinguished Name."""

    country: str
    state: str
    locality: str
    organization: str
    organizational_unit: str
    common_name: str

    def to_x509_name(self) -> x509.Name:
        """Convert to cryptography x509.Name, CN first like /CN=.../C=.. subjects."""
        return x509.Name(
            [
                x509.NameAttribute(oid.NameOID.COMMON_NAME, self.common_name),
                x509.NameAttribute(oid.NameOID.ORGANIZATIONAL_UNIT_NAME, self.organizational_unit),
                x509.NameAttribute(oid.NameOID.ORGANIZATION_NAME, self.organization),
                x509.NameAttribute(oid.NameOID.LOCALITY_NAME, self.locality),
                x509.NameAttribute(oid.NameOID.STATE_OR_PROVINCE_NAME, self.state),
                x509.NameAttribute(oid.NameOID.COUNTRY_NAME, self.country),
            ]
        )


def build_dn_from_config(config: KeystoreConfig, common_name: str) -> DistinguishedName:
    """Build DN from KeystoreConfig fields + common_name."""
    return DistinguishedName(
        country=config.country,
        state=config.state,
        locality=config.locality,
        organization=config.organization,
        organizational_unit=config.organizational_unit,
        common_name=common_name,
    )

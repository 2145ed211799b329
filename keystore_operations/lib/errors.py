"""Exception hierarchy for keystore bootstrap operations."""


class KeystoreError(Exception):
    """Base class for every fatal keystore bootstrap failure."""


class PrerequisiteMissing(KeystoreError):
    """Required tool or CA file is absent or unreadable."""


class IssuanceError(KeystoreError):
    """Certificate issuance failed."""


class KeyGenerationFailed(IssuanceError):
    """Key pair or signing request could not be generated."""


class SigningFailed(IssuanceError):
    """CA could not sign the request (unreadable CA key, bad CSR, ledger failure)."""


class PackagingError(KeystoreError):
    """Keystore packaging failed."""


class BundleExportFailed(PackagingError):
    """Intermediate PKCS#12 bundle could not be exported."""


class ContainerConversionFailed(PackagingError):
    """Bundle or certificate could not be written into the target container."""

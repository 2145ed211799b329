#!/usr/bin/env python3
"""Create server/client keystores and a truststore signed by an existing CA."""

import argparse
import sys
from pathlib import Path

from keystore_operations.lib.config import KeystoreConfig
from keystore_operations.lib.errors import KeystoreError
from keystore_operations.lib.keystore_manager import KeystoreManager
from keystore_operations.lib.logging_config import LOGGER, configure_logger
from keystore_operations.lib.models import (
    KeystoreResult,
    RequestScope,
    TruststoreResult,
    WorkflowResult,
)


class _UsageAction(argparse.Action):
    """Print usage and exit with status 1."""

    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        parser.exit(1)


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    defaults = KeystoreConfig()
    parser = argparse.ArgumentParser(
        description="Create mTLS keystores (server, client) and a truststore signed by a CA",
        add_help=False,
    )
    parser.add_argument("-h", "--help", action=_UsageAction, help="Show this help and exit")

    scope = parser.add_mutually_exclusive_group()
    scope.add_argument(
        "--all",
        "-all",
        dest="scope",
        action="store_const",
        const=RequestScope.ALL,
        help="Create server and client keystores plus truststore (default)",
    )
    scope.add_argument(
        "--client",
        "-client",
        dest="scope",
        action="store_const",
        const=RequestScope.CLIENT,
        help="Create client keystore with client certificate only",
    )
    scope.add_argument(
        "--server",
        "-server",
        dest="scope",
        action="store_const",
        const=RequestScope.SERVER,
        help="Create server keystore with server certificate only",
    )

    parser.add_argument(
        "--single-use",
        "-single-use",
        action="store_true",
        help="Set serverAuth EKU in client certificate for single-use scenarios",
    )
    parser.add_argument(
        "--ca-cert",
        type=Path,
        default=defaults.ca_cert_path,
        help=f"CA certificate PEM (default: {defaults.ca_cert_path})",
    )
    parser.add_argument(
        "--ca-key",
        type=Path,
        default=defaults.ca_key_path,
        help=f"CA private key PEM (default: {defaults.ca_key_path})",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=defaults.output_dir,
        help="Directory for keystore files (default: current directory)",
    )
    parser.add_argument(
        "--store-type",
        type=str.upper,
        choices=["JKS", "PKCS12"],
        default=defaults.store_type,
        help=f"Keystore container type (default: {defaults.store_type})",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: $KEYSTORE_LOG_LEVEL or INFO)",
    )
    return parser


def _log_keystore(result: KeystoreResult, config: KeystoreConfig) -> None:
    display = result.role.value.capitalize()
    LOGGER.info("%s keystore created successfully: %s", display, result.path)
    LOGGER.info("Keystore details:")
    LOGGER.info("  Type: %s", display)
    LOGGER.info("  File: %s", result.path)
    LOGGER.info("  Password: %s", config.password)
    LOGGER.info("  Alias: %s", result.alias)
    LOGGER.info("  Validity: %d days", result.validity_days)
    LOGGER.info("  Subject: %s", result.subject)
    LOGGER.info("  Issuer: %s", result.issuer)
    LOGGER.info("  Extended key usage: %s", ", ".join(result.extended_key_usage))
    LOGGER.info("  Subject alternative names: %s", ", ".join(result.subject_alt_names))
    LOGGER.info("  Signed by CA: %s", config.ca_cert_path)
    if result.single_use:
        LOGGER.info("  Mode: Single-use (serverAuth EKU)")
    LOGGER.info("Keystore contents:\n%s", result.listing)


def _log_truststore(result: TruststoreResult, config: KeystoreConfig) -> None:
    LOGGER.info("Truststore created successfully: %s", result.path)
    LOGGER.info("Truststore details:")
    LOGGER.info("  File: %s", result.path)
    LOGGER.info("  Password: %s", config.password)
    LOGGER.info("  Contains: CA certificate (%s)", result.subject)
    LOGGER.info("Truststore contents:\n%s", result.listing)


def _log_summary(result: WorkflowResult, config: KeystoreConfig) -> None:
    for keystore in result.keystores:
        _log_keystore(keystore, config)
    if result.truststore is not None:
        _log_truststore(result.truststore, config)

    if result.scope is RequestScope.ALL:
        LOGGER.info("Complete mTLS setup created successfully!")
        LOGGER.info("Created files:")
        for path in result.created_paths:
            LOGGER.info("  - %s", path)
    LOGGER.warning("Note: certificates are signed by the CA certificate: %s", config.ca_cert_path)
    LOGGER.warning("For production, ensure your CA certificate is trusted.")


def main() -> int:
    """Create the requested keystores.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = build_parser().parse_args()
    if args.log_level:
        configure_logger(args.log_level)
    scope = args.scope or RequestScope.ALL

    config = KeystoreConfig(
        ca_cert_path=args.ca_cert,
        ca_key_path=args.ca_key,
        output_dir=args.output_dir,
        store_type=args.store_type,
    )

    try:
        manager = KeystoreManager(config)

        LOGGER.info("mTLS keystore creation (%s, %s)", scope.value, config.store_type)
        result = manager.run(scope, single_use=args.single_use)

        _log_summary(result, config)
        return 0

    except KeystoreError as e:
        LOGGER.error("Failed to create %s keystores: %s", scope.value, e)
        return 1
    except Exception as e:
        LOGGER.error("Keystore creation failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())

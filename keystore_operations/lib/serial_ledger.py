"""CA serial number ledger compatible with OpenSSL's -CAcreateserial file."""

from pathlib import Path

from .cert_utils import generate_serial_number
from .file_utils import atomic_write_bytes
from .logging_config import LOGGER


class SerialLedger:
    """File-backed record of the last serial number a CA issued.

    The file holds one line of uppercase hex, the same format OpenSSL keeps in
    ca-cert.srl, so either tool can continue the sequence. There is no file
    locking: concurrent runs against the same CA directory are unsafe.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def current(self) -> int | None:
        """Return the last recorded serial, or None if the ledger does not exist yet.

        Raises:
            ValueError: If the ledger content is not a positive hex integer
            OSError: If the ledger cannot be read
        """
        if not self.path.exists():
            return None
        raw = self.path.read_text().strip()
        try:
            serial = int(raw, 16)
        except ValueError as e:
            raise ValueError(f"malformed serial ledger {self.path}: {raw!r}") from e
        if serial <= 0:
            raise ValueError(f"malformed serial ledger {self.path}: {raw!r}")
        return serial

    def next_serial(self) -> int:
        """Allocate and record the next serial number.

        Creates the ledger with a random serial on first use, increments the
        recorded value afterwards.

        Returns:
            Serial number to put in the next certificate
        """
        previous = self.current()
        if previous is None:
            serial = generate_serial_number()
            LOGGER.info("Creating CA serial ledger: %s", self.path)
        else:
            serial = previous + 1

        serial_hex = f"{serial:X}"
        if len(serial_hex) % 2 != 0:
            serial_hex = "0" + serial_hex
        atomic_write_bytes(self.path, f"{serial_hex}\n".encode(), mode=0o644)
        return serial

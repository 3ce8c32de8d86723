"""Barcode validation for decoded scanner output."""

import logging
import re
from collections.abc import Iterable, Iterator

BARCODE_PATTERN = re.compile(r"^[0-9]{8,13}$")

_logger = logging.getLogger(__name__)


def is_valid_barcode(value: str) -> bool:
    """Return True for 8 to 13 digit EAN/UPC codes."""
    return bool(BARCODE_PATTERN.match(value.strip()))


def valid_barcodes(decoded: Iterable[str]) -> Iterator[str]:
    """Yield the valid barcodes from a stream of decoded scanner strings.

    Invalid reads are logged and skipped. The stream is consumed lazily, so a
    restarted scanner can be fed through a fresh call.
    """
    for value in decoded:
        candidate = value.strip()
        if not BARCODE_PATTERN.match(candidate):
            _logger.warning("Ignoring invalid barcode read: %r", value)
            continue
        yield candidate

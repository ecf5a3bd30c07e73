# src/irdkit/errors.py
from __future__ import annotations


class IrdKitError(Exception):
    """Base class for every failure raised by irdkit."""


# ────────────────────────────────────────────────────────────────
# Key resolution
# ────────────────────────────────────────────────────────────────

class InvalidKeyFormat(IrdKitError, ValueError):
    """Hex decode failure or a key that is not 16 bytes long."""


class SourceNotFound(IrdKitError, FileNotFoundError):
    """A key source the caller pointed at does not exist."""


class GetKeyLogError(IrdKitError):
    """A GetKey log could not be read or holds no usable disc key."""


class InvalidDiscImage(IrdKitError):
    """The path is not a readable ISO9660 disc image."""


class ResolutionError(IrdKitError):
    """The remote lookup could not produce a key."""


class LookupNotFound(ResolutionError):
    pass


class LookupAmbiguous(ResolutionError):
    pass


class LookupFailed(ResolutionError):
    """Transport or HTTP failure while talking to redump.org."""


# ────────────────────────────────────────────────────────────────
# Record comparison
# ────────────────────────────────────────────────────────────────

class CorruptBlob(IrdKitError, ValueError):
    """A compressed header/footer blob failed to decompress."""


class RecordFormatError(IrdKitError, ValueError):
    """A serialized IRD record is missing fields or has bad values."""

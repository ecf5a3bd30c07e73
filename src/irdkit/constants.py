# src/irdkit/constants.py

"""
IRDKit constants: key sizes, sidecar naming, redump.org endpoints and
PS3 disc marker files.
"""

from dataclasses import dataclass

# ================================================================
# KEYS
# ================================================================

KEY_LENGTH = 16          # data1/disc key, bytes
KEY_FILE_SUFFIX = ".key"
GETKEY_LOG_SUFFIX = ".getkey.log"

# Layerbreak for BD-Video hybrid discs, bytes. Only used when the caller asks.
DEFAULT_LAYERBREAK = 12219392

# ================================================================
# HASHING
# ================================================================

HASH_CHUNK_SIZE = 1024 * 1024  # 1 MiB reads for full-image digests

# ================================================================
# REDUMP.ORG
# ================================================================

REDUMP_BASE_URL = "http://redump.org"
REQUEST_TIMEOUT = 30  # seconds, per request


@dataclass(frozen=True)
class RedumpEndpoints:
    """URL templates for the redump.org PS3 section."""
    base_url: str = REDUMP_BASE_URL
    quicksearch: str = "{base}/discs/system/ps3/quicksearch/{query}"
    disc_key: str = "{base}/disc/{disc_id}/key"

    def quicksearch_url(self, query: str) -> str:
        return self.quicksearch.format(base=self.base_url.rstrip("/"), query=query)

    def key_url(self, disc_id: int) -> str:
        return self.disc_key.format(base=self.base_url.rstrip("/"), disc_id=disc_id)


REDUMP = RedumpEndpoints()

# Markers seen in redump.org HTML
REDUMP_NO_RESULTS = "No discs found."
REDUMP_SINGLE_DISC_MARKER = "<b>Download:</b>"

# ================================================================
# PS3 DISC LAYOUT
# ================================================================

PS3_DISC_SFB = "/PS3_DISC.SFB;1"
PS3_PARAM_SFO = "/PS3_GAME/PARAM.SFO;1"

"""Kana file protocol constants.

Single source of truth for the on-disk preamble and payload layout.
Keep this file stable. Writers and readers must remain synchronized.
"""

# Format kinds (first preamble field)
FORMAT_EMBEDDED = 0  # Blob region follows the state region
FORMAT_LINKED = 1    # No blob region, inputs live beside the file

# Encoded as XXXYYYZZZ for version XXX.YYY.ZZZ
FORMAT_VERSION = 2001000

# Versions below this carry gzip-compressed JSON state
VERSION_BINARY_CUTOFF = 1_000_000

# Preamble: [Kind(8) | Version(8) | StateLen(8)] = 24 bytes, little-endian
PREAMBLE_FMT = "<QQQ"
PREAMBLE_LEN = 24

# Largest size a writer may record
MAX_SAFE_SIZE = 2 ** 53

# Stream mode defaults
DEFAULT_OUTPUT_NAME = "analysis.kana"
DEFAULT_TEMP_PREFIX = "kana-"
DEFAULT_COPY_CHUNK_SIZE = 1024 * 1024  # 1 MiB
MIN_COPY_CHUNK_SIZE = 4096

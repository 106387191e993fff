"""Hash and archive naming constants for the dependency install cache."""

HASH_ALGORITHM = "sha256"
BLOCK_SIZE = 8192  # 8KB block size for file processing
ARCHIVE_SUFFIX = ".tar.gz"

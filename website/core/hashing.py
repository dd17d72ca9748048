"""Content digests used for change detection and HTTP validators."""

import hashlib
import re
from pathlib import Path

from website.core.exceptions import AlgorithmUnavailableError

_CHUNK_SIZE = 64 * 1024

_SHA2_DASH_RE = re.compile(r"^sha-(?=\d)")


def normalize_algorithm(name: str) -> str:
    """Map names such as ``SHA-256``, ``SHA3-256`` or ``SHA-512/256`` to hashlib's."""
    name = _SHA2_DASH_RE.sub("sha", name.strip().lower())
    return name.replace("-", "_").replace("/", "_")


class Hasher:
    """Computes hex digests with one configured algorithm.

    The algorithm is validated once at construction, so a missing digest is a
    startup failure rather than a per-call one.
    """

    def __init__(self, algorithm: str = "sha256"):
        """Initialize hasher.

        Args:
            algorithm: Name accepted by ``hashlib.new``; dashed names are
                normalized by :func:`normalize_algorithm`

        Raises:
            AlgorithmUnavailableError: If the runtime lacks the algorithm
        """
        self.algorithm = normalize_algorithm(algorithm)
        try:
            hashlib.new(self.algorithm)
        except (ValueError, TypeError) as e:
            raise AlgorithmUnavailableError(
                f"Hash algorithm '{algorithm}' is not available"
            ) from e

    def digest(self, data: bytes) -> str:
        """Generate the hex digest of raw bytes.

        Args:
            data: Bytes to hash

        Returns:
            Lowercase hex string
        """
        return hashlib.new(self.algorithm, data).hexdigest()

    def digest_text(self, text: str) -> str:
        """Generate the hex digest of UTF-8 encoded text."""
        return self.digest(text.encode("utf-8"))

    def digest_file(self, path: Path) -> str:
        """Generate the hex digest of a file without loading it whole.

        Raises:
            OSError: If the file cannot be read
        """
        h = hashlib.new(self.algorithm)
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                h.update(chunk)
        return h.hexdigest()

    def __repr__(self) -> str:
        return f"Hasher({self.algorithm!r})"

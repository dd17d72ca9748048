"""Tests for the content hasher."""

import hashlib

import pytest

from website.core.exceptions import AlgorithmUnavailableError, ExitCode
from website.core.hashing import Hasher, normalize_algorithm


class TestHasher:
    """Test cases for Hasher."""

    def test_should_hash_bytes_deterministically(self):
        """The same bytes should always produce the same digest."""
        hasher = Hasher()

        first = hasher.digest(b"# Hello\n")
        second = hasher.digest(b"# Hello\n")

        assert first == second
        assert len(first) == 64  # SHA-256 produces 64 hex characters
        assert first == hashlib.sha256(b"# Hello\n").hexdigest()

    def test_should_produce_different_digests_for_different_content(self):
        """Changed content should change the digest."""
        hasher = Hasher()
        assert hasher.digest(b"a") != hasher.digest(b"b")

    def test_should_hash_text_as_utf8(self):
        """Text should be hashed as its UTF-8 encoding."""
        hasher = Hasher()
        assert hasher.digest_text("žaba") == hasher.digest("žaba".encode("utf-8"))

    def test_should_hash_file_in_chunks(self, tmp_path):
        """File digests should match the digest of the whole content."""
        data = b"x" * (200 * 1024) + b"tail"
        path = tmp_path / "big.css"
        path.write_bytes(data)

        hasher = Hasher()
        assert hasher.digest_file(path) == hasher.digest(data)

    def test_should_normalize_algorithm_names(self):
        """Names like SHA-256 should be accepted."""
        hasher = Hasher("SHA-256")
        assert hasher.algorithm == "sha256"
        assert hasher.digest(b"abc") == hashlib.sha256(b"abc").hexdigest()

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("SHA3-256", "sha3_256"),
            ("sha3-512", "sha3_512"),
            ("SHA-512/256", "sha512_256"),
            ("SHA-1", "sha1"),
            ("md5", "md5"),
        ],
    )
    def test_should_map_dashed_names_to_hashlib_names(self, name, expected):
        """Only the dash after a bare SHA prefix is dropped."""
        assert normalize_algorithm(name) == expected

    def test_should_accept_sha3_names(self):
        """SHA3-256 hashes with hashlib's sha3_256."""
        hasher = Hasher("SHA3-256")

        assert hasher.algorithm == "sha3_256"
        assert hasher.digest(b"abc") == hashlib.sha3_256(b"abc").hexdigest()

    def test_should_fail_fast_on_unknown_algorithm(self):
        """An unavailable algorithm should be a fatal startup error."""
        with pytest.raises(AlgorithmUnavailableError) as exc_info:
            Hasher("no-such-digest")

        assert exc_info.value.exit_code == ExitCode.HASH_ALGORITHM_MISSING
        assert "no-such-digest" in str(exc_info.value)

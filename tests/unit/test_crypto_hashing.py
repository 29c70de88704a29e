"""
Unit tests for cryptographic hashing functions.
"""

import pytest

from quadvote.crypto.hashing import Hash, SHA256Hasher


class TestHash:
    """Test the Hash class."""

    def test_hash_creation(self):
        """Test creating a hash from bytes."""
        data = b"\x01" * 32
        hash_obj = Hash(data)
        assert hash_obj.value == data

    def test_hash_invalid_length(self):
        """Test that invalid length raises ValueError."""
        with pytest.raises(ValueError, match="Hash must be exactly 32 bytes"):
            Hash(b"\x00" * 31)

        with pytest.raises(ValueError, match="Hash must be exactly 32 bytes"):
            Hash(b"\x00" * 33)

    def test_hash_from_hex(self):
        """Test creating a hash from hex string."""
        hash_obj = Hash.from_hex("ab" * 32)
        assert hash_obj.value == b"\xab" * 32
        assert hash_obj.to_hex() == "ab" * 32

    def test_hash_zero(self):
        """Test creating a zero hash."""
        assert Hash.zero().value == b"\x00" * 32

    def test_hash_string_representation(self):
        """Test string representation of hash."""
        hash_obj = Hash.from_hex("00" * 32)
        assert str(hash_obj) == "00" * 32
        assert "Hash(" in repr(hash_obj)

    def test_hash_equality_and_hashable(self):
        """Test hash equality and use as a set member."""
        hash1 = Hash.from_hex("00" * 32)
        hash2 = Hash.from_hex("00" * 32)
        hash3 = Hash.from_hex("01" + "00" * 31)

        assert hash1 == hash2
        assert hash1 != hash3
        assert len({hash1, hash2, hash3}) == 2


class TestSHA256Hasher:
    """Test SHA256Hasher class."""

    def test_hash_empty_input(self):
        """Test the well-known digest of empty input."""
        assert SHA256Hasher.hash(b"").to_hex() == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_hash_abc(self):
        """Test the well-known digest of 'abc'."""
        assert SHA256Hasher.hash("abc").to_hex() == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_hash_string_equals_utf8_bytes(self):
        """Strings are hashed as their UTF-8 encoding."""
        assert SHA256Hasher.hash("vote-cast") == SHA256Hasher.hash(b"vote-cast")

"""Tests for identifier validation and generation."""

from __future__ import annotations

import random
import string

import pytest

from rolodex.core.identifiers import IdentifierScheme, ObjectIdFactory, generate, validate


class TestValidateHex24:
    """Test the 24-character object id scheme."""

    @pytest.mark.parametrize(
        "value",
        ["a1a1a1a1a1a1a1a1a1a1a1a1", "0123456789abcdef01234567", "f" * 24],
    )
    def test_accepts_lowercase_hex(self, value: str) -> None:
        """Should accept exactly 24 lowercase hex digits."""
        assert validate(value, IdentifierScheme.HEX24) is True

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "a1a1a1a1a1a1a1a1a1a1a1a",  # 23 chars
            "a1a1a1a1a1a1a1a1a1a1a1a1a",  # 25 chars
            "A1A1A1A1A1A1A1A1A1A1A1A1",  # uppercase
            "g1a1a1a1a1a1a1a1a1a1a1a1",  # non-hex
            " a1a1a1a1a1a1a1a1a1a1a1a",
            "a1a1a1a1a1a1a1a1a1a1a1a1\n",
        ],
    )
    def test_rejects_malformed(self, value: str) -> None:
        """Should reject wrong length, case or alphabet."""
        assert validate(value, IdentifierScheme.HEX24) is False

    def test_random_strings_of_other_lengths(self) -> None:
        """No string whose length differs from 24 is ever valid."""
        rng = random.Random(7)
        for _ in range(200):
            length = rng.choice([n for n in range(0, 40) if n != 24])
            value = "".join(rng.choice("0123456789abcdef") for _ in range(length))
            assert validate(value, "hex24") is False

    def test_random_lowercase_hex_strings(self) -> None:
        """Every 24-character lowercase hex string is valid."""
        rng = random.Random(11)
        for _ in range(200):
            value = "".join(rng.choice("0123456789abcdef") for _ in range(24))
            assert validate(value, "hex24") is True

    def test_random_strings_with_non_hex_character(self) -> None:
        """A single non-hex character invalidates the id."""
        rng = random.Random(3)
        non_hex = [c for c in string.printable if c not in "0123456789abcdef"]
        for _ in range(200):
            chars = [rng.choice("0123456789abcdef") for _ in range(24)]
            chars[rng.randrange(24)] = rng.choice(non_hex)
            assert validate("".join(chars), "hex24") is False


class TestValidateUuid:
    """Test the canonical UUID scheme."""

    @pytest.mark.parametrize(
        "value",
        [
            "123e4567-e89b-12d3-a456-426614174000",
            "123E4567-E89B-12D3-A456-426614174000",
            "00000000-0000-0000-0000-000000000000",
        ],
    )
    def test_accepts_canonical(self, value: str) -> None:
        """Should accept hyphenated 8-4-4-4-12 hex, any case."""
        assert validate(value, IdentifierScheme.UUID) is True

    @pytest.mark.parametrize(
        "value",
        [
            "not-a-uuid",
            "123e4567e89b12d3a456426614174000",
            "{123e4567-e89b-12d3-a456-426614174000}",
            "123e4567-e89b-12d3-a456-42661417400",
            "123e4567-e89b-12d3-a456-4266141740000",
            "z23e4567-e89b-12d3-a456-426614174000",
        ],
    )
    def test_rejects_non_canonical(self, value: str) -> None:
        """Should reject anything other than the canonical form."""
        assert validate(value, IdentifierScheme.UUID) is False


class TestValidateOpaque:
    """Test the opaque token scheme."""

    def test_accepts_any_non_empty(self) -> None:
        assert validate("1", IdentifierScheme.OPAQUE) is True
        assert validate("contact-42", IdentifierScheme.OPAQUE) is True

    def test_rejects_empty(self) -> None:
        assert validate("", IdentifierScheme.OPAQUE) is False


class TestValidateEdgeCases:
    """Test non-string input and scheme errors."""

    @pytest.mark.parametrize("value", [None, 42, b"a1a1a1a1a1a1a1a1a1a1a1a1", ["x"]])
    def test_non_string_is_invalid(self, value: object) -> None:
        """Should return False rather than raising for non-strings."""
        for scheme in IdentifierScheme:
            assert validate(value, scheme) is False

    def test_scheme_accepts_plain_string(self) -> None:
        assert validate("a1a1a1a1a1a1a1a1a1a1a1a1", "hex24") is True

    def test_unknown_scheme_raises(self) -> None:
        """An unknown scheme is a programming error."""
        with pytest.raises(ValueError, match="Unknown identifier scheme"):
            validate("abc", "sha1")


class TestGenerate:
    """Test identifier generation."""

    def test_hex24_ids_validate(self) -> None:
        value = generate(IdentifierScheme.HEX24)
        assert validate(value, IdentifierScheme.HEX24)

    def test_hex24_ids_are_distinct(self) -> None:
        values = {generate("hex24") for _ in range(500)}
        assert len(values) == 500

    def test_object_id_layout(self) -> None:
        """Consecutive ids share the process bytes and differ in the counter."""
        factory = ObjectIdFactory()
        first, second = factory(), factory()
        assert first[8:18] == second[8:18]
        assert (int(second[18:], 16) - int(first[18:], 16)) % (1 << 24) == 1

    def test_uuid_ids_validate(self) -> None:
        value = generate(IdentifierScheme.UUID)
        assert validate(value, IdentifierScheme.UUID)
        assert value == value.lower()

    def test_opaque_starts_at_one(self) -> None:
        assert generate(IdentifierScheme.OPAQUE) == "1"

    def test_opaque_increments_past_largest_integer(self) -> None:
        """Should continue after the largest integer-valued id."""
        assert generate("opaque", ["1", "7", "abc", "3"]) == "8"

    def test_skips_existing_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should regenerate when a candidate is already taken."""
        candidates = iter(["b" * 24, "c" * 24])
        monkeypatch.setattr("rolodex.core.identifiers._object_ids", lambda: next(candidates))
        assert generate("hex24", ["b" * 24]) == "c" * 24

    def test_unknown_scheme_raises(self) -> None:
        with pytest.raises(ValueError):
            generate("base64")

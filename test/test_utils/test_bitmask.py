"""Tests for the bit-wise selection containers."""

import numpy as np
import pytest

from femtoderived.utils.bitmask import BitMask, SelectionBits, passes


class TestBitMask:
    """Test the immutable selection container."""

    def test_required_bits_filter(self):
        """A mask passes a requirement iff it holds all of its bits."""
        mask = BitMask(0b0110)
        assert mask.matches(0b0010)
        assert mask.matches(0b0110)
        assert not mask.matches(0b1000)
        assert not mask.matches(0b1010)

    def test_empty_requirement(self):
        """Every mask passes an empty requirement."""
        assert BitMask(0).matches(0)
        assert BitMask(0b1).matches(BitMask(0))

    def test_from_bits_and_test(self):
        """Test building a mask from bit positions and reading it back."""
        mask = BitMask.from_bits([0, 3, 31])
        assert mask.value == (1 << 0) | (1 << 3) | (1 << 31)
        assert mask.test(3)
        assert not mask.test(2)
        assert mask.bits() == [0, 3, 31]

    def test_set_returns_new_mask(self):
        """Setting a bit does not modify the original mask."""
        mask = BitMask(0b01)
        other = mask.set(1)
        assert mask.value == 0b01
        assert other.value == 0b11
        assert (mask | 0b100) == 0b101

    def test_out_of_range(self):
        """Bits and values must fit in 32 unsigned bits."""
        with pytest.raises(ValueError):
            BitMask(1 << 32)
        with pytest.raises(ValueError):
            BitMask(-1)
        with pytest.raises(ValueError):
            BitMask().set(32)

    def test_integer_protocols(self):
        """Test that masks behave as integers where needed."""
        mask = BitMask(5)
        assert int(mask) == 5
        assert [0, 1, 2, 3, 4, 5][mask] == 5
        assert mask == 5
        assert mask == np.uint32(5)
        assert hash(mask) == hash(BitMask(5))
        assert repr(mask) == "BitMask(0b101)"


class TestPasses:
    """Test the vectorized filter."""

    def test_matches_scalar_filter(self):
        """The vectorized filter agrees with `(m & R) == R`."""
        rng = np.random.default_rng(seed=0)
        masks = rng.integers(0, 1 << 8, size=200).astype(np.uint32)
        for required in (0, 0b1, 0b0110, 0b1111, 0b10000000):
            expected = (masks & required) == required
            assert np.array_equal(passes(masks, required), expected)

    def test_scalar_input(self):
        """Test the filter on a single container."""
        assert passes(0b0110, 0b0010)
        assert not passes(0b0110, BitMask(0b1000))


class TestSelectionBits:
    """Test the versioned criterion to bit tables."""

    def test_list_assignment(self):
        """Criteria listed in order are assigned consecutive bits."""
        table = SelectionBits(["pt_min", "eta_max", "dca_xy"], "cut", "240719")
        assert len(table) == 3
        assert "eta_max" in table
        assert table.bit("dca_xy") == 2
        assert table.mask("pt_min", "dca_xy") == 0b101
        assert table.version == "240719"

    def test_decode(self):
        """Test decoding a stored mask into criterion names."""
        table = SelectionBits({"tpc": 0, "tof": 4})
        assert table.criteria(0b10001) == ["tpc", "tof"]
        assert table.criteria(0b00010) == []

    def test_duplicate_bit(self):
        """Two criteria cannot share a bit."""
        with pytest.raises(ValueError, match="share"):
            SelectionBits({"tpc": 1, "tof": 1})

    def test_unknown_criterion(self):
        """Test that an unknown criterion is rejected."""
        table = SelectionBits(["pt_min"])
        with pytest.raises(KeyError):
            table.mask("eta_max")

    def test_as_dict(self):
        """Test the stored representation of a table."""
        table = SelectionBits(["a", "b"], "pidcut", 240719)
        assert table.as_dict() == {
            "name": "pidcut",
            "version": "240719",
            "bits": {"a": 0, "b": 1},
        }

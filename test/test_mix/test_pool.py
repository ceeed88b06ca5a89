"""Tests for the event-mixing pools and the auto-correlation helpers."""

import numpy as np
import pytest

from femtoderived.data import HFCandidate, ParticleIndex
from femtoderived.mix import MixingPool, share_children, shares_prong
from femtoderived.utils.globals import INVALID_BIN


class TestMixingPool:
    """Test the grouping of collisions into mixing pools."""

    def test_from_data(self, data):
        """Collisions sharing a hash bin are mixed together."""
        pool = MixingPool.from_data(data)
        assert len(pool) == 2
        assert sorted(pool.groups().values()) == [[0, 1], [2]]
        assert pool.partners(0) == [1]
        assert pool.partners(2) == []
        assert list(pool.mixed_pairs()) == [(1, 0)]

    def test_invalid_bin(self):
        """The invalid bin is never mixed."""
        pool = MixingPool([INVALID_BIN, INVALID_BIN, 3])
        assert pool.groups() == {3: [2]}
        assert pool.partners(0) == []
        assert list(pool.mixed_pairs()) == []

    def test_eligibility(self, data):
        """Only collisions with the required role mask are mixed."""
        pool = MixingPool.from_data(data, role=0, required=0b1)
        assert len(pool) == 2
        assert np.array_equal(pool.same_event(), [0, 1, 2])

        pool = MixingPool.from_data(data, role=1, required=0b1)
        assert len(pool) == 0
        assert len(pool.same_event()) == 0
        assert pool.partners(0) == []

    def test_mixing_depth(self):
        """Each collision is mixed with the closest preceding ones first."""
        pool = MixingPool([7, 7, 7, 7])
        assert list(pool.mixed_pairs(depth=2)) == [
            (1, 0), (2, 1), (2, 0), (3, 2), (3, 1)
        ]
        assert len(list(pool.mixed_pairs())) == 6

    def test_deterministic_order(self):
        """Pairs are produced bin by bin, in production order."""
        pool = MixingPool([5, 1, 5, 1])
        assert list(pool.mixed_pairs()) == [(3, 1), (2, 0)]

    def test_invalid_depth(self):
        """Test that the mixing depth must be positive."""
        with pytest.raises(AssertionError):
            list(MixingPool([1]).mixed_pairs(depth=0))


class TestAutoCorrelations:
    """Test the detection of pairs built from the same tracks."""

    def test_share_children(self, data):
        """A V0 is related to its daughters, not to the primary tracks."""
        assert share_children(data, 4, 2)
        assert share_children(data, 3, 4)
        assert share_children(data, 0, 0)
        assert not share_children(data, 0, 4)
        assert not share_children(data, 2, 3)

    def test_shares_prong(self, data):
        """Test the removal of pairs which share a track with a candidate."""
        candidate = HFCandidate(prong0_id=100, prong1_id=201, prong2_id=None)
        assert shares_prong(candidate, 100)
        assert shares_prong(candidate, data.particle_indexes[3])
        assert not shares_prong(candidate, ParticleIndex(track_id=300))

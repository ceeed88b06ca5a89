"""Tests for the row data classes."""

import numpy as np
import pytest

from femtoderived.data import (
    Collision,
    CollisionMask,
    ExtLabel,
    ExtParticle,
    HashBin,
    HFCandidate,
    Label,
    McParticle,
    Particle,
    WriteOnceError,
)
from femtoderived.utils.enums import ParticleOriginMCTruth, ParticleType
from femtoderived.utils.globals import INVALID_BIN


class TestParticle:
    """Test the selected particle row."""

    def test_defaults(self):
        """Each instance gets its own empty list of children."""
        first, second = Particle(), Particle()
        assert first.children_ids.dtype == np.int64
        assert len(first.children_ids) == 0
        assert first.children_ids is not second.children_ids
        assert first.part_type == ParticleType.TRACK

    def test_dynamic_attributes(self):
        """Test the derived momentum components."""
        particle = Particle(pt=1.0, eta=0.0, phi=0.0)
        assert particle.theta == pytest.approx(np.pi / 2)
        assert particle.px == pytest.approx(0.0)
        assert particle.py == pytest.approx(1.0)
        assert particle.pz == pytest.approx(0.0)
        assert particle.p == pytest.approx(1.0)
        assert "px" in particle.dynamic_attrs

    def test_write_once_cut(self):
        """The selection containers cannot be changed once set."""
        particle = Particle(cut=0b0110, pidcut=0b1)
        particle.cut = 0b0110
        with pytest.raises(WriteOnceError):
            particle.cut = 0b0111
        with pytest.raises(WriteOnceError):
            particle.pidcut = 0

    def test_passes(self):
        """Test the selection of a particle against required bits."""
        particle = Particle(cut=0b0110, pidcut=0b01)
        assert particle.passes(0b0010)
        assert particle.passes(0b0110, 0b01)
        assert not particle.passes(0b1000)
        assert not particle.passes(0, 0b10)

    def test_mass_hypotheses(self):
        """Only V0s and cascades carry meaningful mass hypotheses."""
        assert Particle(part_type=ParticleType.V0).has_mass_hypotheses
        assert Particle(part_type=ParticleType.CASCADE).has_mass_hypotheses
        assert not Particle(part_type=ParticleType.TRACK).has_mass_hypotheses

    def test_shift_indexes(self):
        """Index attributes are offset, invalid indexes are not."""
        particle = Particle(id=2, collision_id=1, children_ids=[0, 1])
        particle.shift_indexes({"id": 10, "collision_id": 3, "children_ids": 10})
        assert particle.id == 12
        assert particle.collision_id == 4
        assert np.array_equal(particle.children_ids, [10, 11])

        orphan = Particle()
        orphan.shift_indexes(5)
        assert orphan.id == -1

    def test_equality(self):
        """Rows compare attribute by attribute, arrays included."""
        assert Particle(pt=1.0, children_ids=[1, 2]) == Particle(pt=1.0, children_ids=[1, 2])
        assert Particle(children_ids=[1, 2]) != Particle(children_ids=[1])
        assert Particle() != Collision()


class TestCompanions:
    """Test the rows joined 1:1 to their owner."""

    def test_collision_mask_roles(self):
        """Test the typed access to the role masks."""
        mask = CollisionMask(bitmask_track_one=0b1, bitmask_track_three=0b100)
        assert mask.role(0).matches(0b1)
        assert mask.role(1) == 0
        assert mask.role(2).test(2)
        with pytest.raises(WriteOnceError):
            mask.bitmask_track_one = 0b11

    def test_hash_bin(self):
        """The invalid bin is never valid."""
        assert not HashBin().is_valid
        assert HashBin().bin == INVALID_BIN
        assert HashBin(bin=0).is_valid

    def test_cluster_ratio(self):
        """Test the crossed rows over findable clusters of a track."""
        ext = ExtParticle(tpc_n_cls_crossed_rows=120, tpc_n_cls_findable=150)
        assert ext.tpc_crossed_rows_over_findable_cls == pytest.approx(0.8)


class TestTruth:
    """Test the truth particles and labels."""

    def test_label(self):
        """A label is either unmatched or matched once."""
        label = Label()
        assert not label.is_matched
        label.mc_particle_id = 3
        assert label.is_matched
        with pytest.raises(WriteOnceError):
            label.mc_particle_id = 4

    def test_label_shift_keeps_unmatched(self):
        """Unmatched labels stay unmatched when shifted."""
        label = Label()
        label.shift_indexes(10)
        assert label.mc_particle_id is None

    def test_ext_label(self):
        """A truth debug link is set once and shifted with its table."""
        ext_label = ExtLabel()
        assert not ext_label.is_matched
        ext_label.ext_mc_particle_id = 2
        with pytest.raises(WriteOnceError):
            ext_label.ext_mc_particle_id = 5
        ext_label.shift_indexes({"ext_mc_particle_id": 10})
        assert ext_label.ext_mc_particle_id == 12

    def test_debug_match(self):
        """Fake and wrong-collision truth particles are debug matches."""
        assert McParticle(part_origin_mc_truth=ParticleOriginMCTruth.FAKE).is_debug_match
        assert McParticle(
            part_origin_mc_truth=ParticleOriginMCTruth.WRONG_COLLISION
        ).is_debug_match
        assert not McParticle().is_debug_match


class TestHFCandidate:
    """Test the heavy-flavour candidate row."""

    def test_prongs(self):
        """Two- and three-prong candidates expose their track identifiers."""
        two = HFCandidate(prong0_id=5, prong1_id=8)
        three = HFCandidate(prong0_id=5, prong1_id=8, prong2_id=9)
        assert two.num_prongs == 2
        assert two.prong_ids == (5, 8)
        assert three.num_prongs == 3
        assert three.has_prong(9)
        assert not two.has_prong(9)

    def test_truth_index(self):
        """The truth index of a candidate is optional and set once."""
        candidate = HFCandidate(id=0, collision_id=0)
        assert not candidate.is_matched
        candidate.mc_id = 1
        assert candidate.is_matched
        with pytest.raises(WriteOnceError):
            candidate.mc_id = 2

        candidate.shift_indexes({"id": 3, "collision_id": 1, "mc_id": 4})
        assert (candidate.id, candidate.collision_id, candidate.mc_id) == (3, 1, 5)
        assert HFCandidate().scalar_dict(["mc_id"]) == {"mc_id": -1}


class TestScalarDict:
    """Test the flattening of rows into scalars."""

    def test_padding(self):
        """Variable-length attributes are padded to the requested length."""
        particle = Particle(id=3, children_ids=[1])
        values = particle.scalar_dict(["id", "children_ids"], {"children_ids": 2})
        assert values == {"id": 3, "children_ids_0": 1, "children_ids_1": -1}

    def test_nullable(self):
        """Absent nullable indexes are flattened as invalid."""
        assert Label().scalar_dict() == {"mc_particle_id": -1}

    def test_unknown_attribute(self):
        """Test that unknown attributes are reported."""
        with pytest.raises(AttributeError):
            Collision().scalar_dict(["pos_z", "vertex"])

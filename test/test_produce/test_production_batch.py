"""Tests for the production of derived data, one event at a time."""

import numpy as np
import pytest

from femtoderived.data import (
    ChildrenCycleError,
    ColumnValueError,
    CommitError,
    CompanionLengthError,
    DanglingReferenceError,
    ExtParticle,
    InvalidEnumError,
    LabelRangeError,
    WriteOnceError,
)
from femtoderived.produce import EventWriter, ProductionBatch
from femtoderived.utils.globals import INVALID_BIN
from femtoderived.utils.enums import ParticleType


class TestEventWriter:
    """Test the writing of single events."""

    def test_collision_written_last(self, config):
        """The collision and its companions are only visible once closed."""
        batch = ProductionBatch(config)
        with batch.event(pos_z=1.0, mult_ntr=3) as writer:
            index = writer.add_particle(1.0, 0.0, 0.0, cut=0b1)
            assert index == 0
            assert batch.num_rows("collisions") == 0
            assert batch.num_rows("particles") == 0

        assert batch.num_rows("collisions") == 1
        assert batch.num_rows("collision_masks") == 1
        assert batch.rows("particles")[0].collision_id == 0

        # Hash bins are only assigned when the batch is committed
        assert batch.num_rows("hashes") == 0
        assert len(batch.commit().hashes) == 1

    def test_indexes(self, batch):
        """Particle indexes are global to the batch."""
        particles = batch.rows("particles")
        assert [p.id for p in particles] == list(range(15))
        assert [p.collision_id for p in particles[5:10]] == [1] * 5
        assert np.array_equal(particles[9].children_ids, [7, 8])

    def test_discard_on_error(self, config, fill_event):
        """An event which raises leaves no row behind."""
        batch = ProductionBatch(config)
        with pytest.raises(RuntimeError, match="reader"):
            with batch.event(pos_z=1.0) as writer:
                fill_event(writer)
                raise RuntimeError("reader failure")

        assert batch.num_rows("collisions") == 0
        assert batch.num_rows("particles") == 0

        # The next event reuses the freed indexes
        with batch.event(pos_z=1.0) as writer:
            assert writer.collision_id == 0
            assert writer.add_particle(1.0, 0.0, 0.0) == 0

    def test_single_writer(self, batch):
        """Only one event can be open at a time."""
        with batch.event() as writer:
            with pytest.raises(RuntimeError):
                batch.event()
            writer.add_particle(1.0, 0.0, 0.0)

        assert batch.num_rows("collisions") == 4

    def test_closed_event(self, config):
        """A closed event cannot be written to."""
        batch = ProductionBatch(config)
        with batch.event() as writer:
            pass
        with pytest.raises(WriteOnceError):
            writer.add_particle(1.0, 0.0, 0.0)
        with pytest.raises(WriteOnceError):
            writer.set_masks(track_one=1)

    def test_write_once_masks(self, config):
        """Collision masks and downsampling flags are set once."""
        batch = ProductionBatch(config)
        with batch.event() as writer:
            writer.set_masks(track_one=0b1)
            writer.set_downsample(True)
            with pytest.raises(WriteOnceError):
                writer.set_masks(track_two=0b1)
            with pytest.raises(WriteOnceError):
                writer.set_downsample(False)

        mask = batch.rows("collision_masks")[0]
        assert mask.bitmask_track_one == 0b1
        assert batch.rows("downsample")[0].downsample

    def test_default_masks(self, config):
        """A collision without explicit masks is eligible for nothing."""
        batch = ProductionBatch(config)
        with batch.event():
            pass

        mask = batch.rows("collision_masks")[0]
        assert mask.role(0) == 0 and mask.role(2) == 0

    def test_no_binner(self, fill_event):
        """Without a binning configuration, no hash bins are written."""
        batch = ProductionBatch()
        with batch.event(pos_z=1.0) as writer:
            fill_event(writer)

        data = batch.commit()
        assert len(data.hashes) == 0
        assert data.conventions == {}

    def test_ext_particle(self, config):
        """Debug information can be given as a row or as a dictionary."""
        batch = ProductionBatch(config)
        with batch.event() as writer:
            writer.add_particle(1.0, 0.0, 0.0, ext={"sign": 1, "dca_xy": 0.01})
            writer.add_particle(1.0, 0.0, 0.0, ext=ExtParticle(sign=-1))
            with pytest.raises(TypeError):
                writer.add_particle(1.0, 0.0, 0.0, ext=3)

        data = batch.commit()
        assert np.array_equal(data.ext_particles.column("sign"), [1, -1])

    def test_hf_candidates(self, config):
        """Heavy-flavour candidates are tied to the collision only."""
        batch = ProductionBatch(config)
        with batch.event() as writer:
            writer.add_particle(1.0, 0.0, 0.0, track_id=11)
        with batch.event() as writer:
            index = writer.add_hf_candidate(
                prong0_id=11, prong1_id=12, prong2_id=13, m=2.28, pt=4.0
            )
            writer.add_hf_gen(pt=4.1, flag_mc=3)

        data = batch.commit()
        assert index == 0
        candidate = data.hf_candidates[0]
        assert candidate.collision_id == 1
        assert candidate.num_prongs == 3
        assert not candidate.is_matched
        assert data.hf_candidates_mc_gen[0].collision_id == 1
        assert np.array_equal(data.candidates_in(1), [0])

    def test_hf_candidates_truth(self, config):
        """Matched and unmatched candidates can share a Monte-Carlo batch."""
        batch = ProductionBatch(config, is_mc=True)
        with batch.event() as writer:
            writer.add_hf_candidate(prong0_id=1, prong1_id=2, m=1.86)
            writer.add_hf_candidate(
                prong0_id=3, prong1_id=4, m=1.87,
                mc={"flag_mc": -1, "origin_mc_rec": 2}
            )
        with batch.event() as writer:
            writer.add_hf_candidate(
                prong0_id=5, prong1_id=6, m=2.28, mc={"flag_mc": 3}
            )
            writer.add_hf_candidate(prong0_id=7, prong1_id=8, m=2.29)

        data = batch.commit()
        assert len(data.hf_candidates) == 4
        assert len(data.hf_candidates_mc) == 2
        assert list(data.hf_candidates.column("mc_id")) == [-1, 0, 1, -1]
        assert data.candidate_truth(0) is None
        assert data.candidate_truth(1).flag_mc == -1
        assert data.candidate_truth(1).origin_mc_rec == 2
        assert data.candidate_truth(2).flag_mc == 3
        assert data.candidate_truth(3) is None

    def test_ext_labels(self, config, fill_event):
        """Each particle of a Monte-Carlo batch links to its truth debug row."""
        batch = ProductionBatch(config, is_mc=True)
        with batch.event() as writer:
            fill_event(writer, mc=True)
            writer.add_particle(1.0, 0.0, 0.0)

        data = batch.commit()
        assert len(data.ext_labels) == len(data.particles) == 6
        ext_ids = data.ext_labels.column("ext_mc_particle_id")
        assert list(ext_ids) == [0, 1, -1, -1, 2, -1]
        assert data.ext_truth(4).mother_pdg == 3312
        assert data.ext_truth(5) is None

    def test_ext_label_range(self, config):
        """Truth debug links must point inside the truth debug table."""
        batch = ProductionBatch(config, is_mc=True)
        with batch.event() as writer:
            label = writer.add_mc_particle(2212, 1.0, 0.0, 0.0, ext=2212)
            writer.add_particle(1.0, 0.0, 0.0, label=label, ext_label=1)

        with pytest.raises(LabelRangeError):
            batch.commit()

    def test_data_batch_has_no_truth(self, config):
        """Truth information can only be written in Monte-Carlo batches."""
        batch = ProductionBatch(config)
        with pytest.raises(AssertionError):
            with batch.event() as writer:
                writer.add_mc_particle(2212, 1.0, 0.0, 0.0)
        with pytest.raises(AssertionError):
            with batch.event() as writer:
                writer.add_particle(1.0, 0.0, 0.0, label=0)
        with pytest.raises(AssertionError):
            with batch.event() as writer:
                writer.add_particle(1.0, 0.0, 0.0, ext_label=0)
        with pytest.raises(AssertionError):
            with batch.event() as writer:
                writer.add_hf_candidate(prong0_id=1, mc={"flag_mc": 1})

        assert batch.num_rows("collisions") == 0

    def test_failed_close(self, config, monkeypatch):
        """An event which fails to close still releases the batch."""

        def fail(self):
            raise RuntimeError("cannot close")

        batch = ProductionBatch(config)
        monkeypatch.setattr(EventWriter, "_close", fail)
        with pytest.raises(RuntimeError, match="cannot close"):
            with batch.event() as writer:
                writer.add_particle(1.0, 0.0, 0.0)

        assert batch.num_rows("particles") == 0
        monkeypatch.undo()

        with batch.event() as writer:
            assert writer.collision_id == 0
        batch.discard()
        assert batch.closed


class TestCommit:
    """Test the validation of a batch when it is committed."""

    def test_commit(self, batch):
        """A committed batch becomes read-only data and is closed."""
        data = batch.commit()
        assert len(data.particles) == 15
        assert batch.closed
        with pytest.raises(WriteOnceError):
            batch.event()
        with pytest.raises(WriteOnceError):
            batch.commit()

    def test_open_event(self, batch):
        """A batch cannot be committed while an event is open."""
        with batch.event():
            with pytest.raises(RuntimeError):
                batch.commit()

    def test_discard(self, batch):
        """A discarded batch exposes none of its rows."""
        batch.discard()
        assert batch.closed
        assert batch.num_rows("particles") == 0
        with pytest.raises(WriteOnceError):
            batch.event()

    def test_forward_child(self, config):
        """Daughters must be written before their parent."""
        batch = ProductionBatch(config)
        with batch.event() as writer:
            writer.add_particle(1.0, 0.0, 0.0, children_ids=[1])
            writer.add_particle(1.0, 0.0, 0.0)

        with pytest.raises(DanglingReferenceError):
            batch.commit()
        assert not batch.closed

    def test_self_child(self, config):
        """A particle cannot be its own daughter."""
        batch = ProductionBatch(config)
        with batch.event() as writer:
            writer.add_particle(1.0, 0.0, 0.0, children_ids=[0])

        with pytest.raises(ChildrenCycleError):
            batch.commit()

    def test_invalid_type(self, config):
        """Particle types outside of the enumeration are rejected."""
        batch = ProductionBatch(config)
        with batch.event() as writer:
            writer.add_particle(1.0, 0.0, 0.0, part_type=ParticleType.V0)
            writer.add_particle(1.0, 0.0, 0.0, part_type=300)

        with pytest.raises(InvalidEnumError):
            batch.commit()

    def test_companion_length(self, config):
        """Debug information must be given for all particles or none."""
        batch = ProductionBatch(config)
        with batch.event() as writer:
            writer.add_particle(1.0, 0.0, 0.0, ext={"sign": 1})
            writer.add_particle(1.0, 0.0, 0.0)

        with pytest.raises(CompanionLengthError):
            batch.commit()

    def test_bins_of_stored_values(self, config):
        """Hash bins are assigned from the values as they are stored."""
        batch = ProductionBatch(config)
        for pos_z in (-5.0000001, -10.0000001, 9.99999999):
            with batch.event(pos_z=pos_z, mult_ntr=3):
                pass

        data = batch.commit()
        stored = data.hashes.column("bin")
        assert np.array_equal(stored, config.binner.assign(data.collisions))
        assert stored[0] == config.binner(data.collisions[0])
        assert stored[0] != config.binner({"pos_z": -5.0000001, "mult_ntr": 3})
        assert stored[1] != INVALID_BIN
        assert stored[2] == INVALID_BIN

    @pytest.mark.parametrize(
        "collision, ext",
        [
            ({"pos_z": "bad"}, None),
            ({"mult_ntr": 2**40}, None),
            ({}, {"tpc_n_cls_found": 300}),
        ],
    )
    def test_value_does_not_fit(self, config, collision, ext):
        """Values which do not fit in their column fail the commit only."""
        batch = ProductionBatch(config)
        with batch.event(**collision) as writer:
            writer.add_particle(1.0, 0.0, 0.0, ext=ext)

        with pytest.raises(ColumnValueError) as excinfo:
            batch.commit()
        assert isinstance(excinfo.value, CommitError)
        assert not batch.closed

        batch.discard()
        assert batch.closed

    def test_label_range(self, config):
        """Labels must point inside the truth table."""
        batch = ProductionBatch(config, is_mc=True)
        with batch.event() as writer:
            writer.add_particle(1.0, 0.0, 0.0, label=4)

        with pytest.raises(LabelRangeError):
            batch.commit()

    def test_mc_commit(self, config, fill_event):
        """Every particle of a Monte-Carlo batch has a label."""
        batch = ProductionBatch(config, is_mc=True)
        for _ in range(2):
            with batch.event(pos_z=0.0) as writer:
                fill_event(writer, mc=True)

        data = batch.commit()
        labels = data.labels.column("mc_particle_id")
        assert list(labels) == [0, 1, -1, -1, 2, 3, 4, -1, -1, 5]
        assert data.truth(9).pdg_mc_truth == 3122

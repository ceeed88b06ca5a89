"""Module with the read-only store of committed derived data.

A :class:`DerivedData` object groups all the tables of one committed
production. Its columns are flagged non-writeable: it can be shared across
readers without locking, and reading it performs no validation.
"""

import numpy as np

from femtoderived.utils.bitmask import passes
from femtoderived.utils.globals import INVALID_INDEX

from . import integrity
from .collision import Collision, CollisionMask, Downsample, HashBin
from .errors import CommitError, DataQualityError, LabelRangeError
from .hf import HFCandidate, HFCandidateMC, HFCandidateMCGen
from .mc import ExtLabel, ExtMcParticle, Label, McParticle
from .particle import ExtParticle, Particle, ParticleIndex
from .table import Table

__all__ = ["DerivedData"]


class DerivedData:
    """Committed collection of derived tables.

    Attributes
    ----------
    collisions : Table
        Collision table
    collision_masks : Table
        Per-role mixing eligibility of each collision (1:1 companion)
    downsample : Table
        Downsampling flag of each collision (1:1 companion, optional)
    hashes : Table
        Event-mixing hash bin of each collision (1:1 companion, optional)
    particles : Table
        Selected particle table
    ext_particles : Table
        Detector-level debug information (1:1 companion, optional)
    particle_indexes : Table
        Raw track identifiers of the particles (1:1 companion, optional)
    labels : Table
        Truth labels of the particles (1:1 companion, optional)
    ext_labels : Table
        Links of the particles to the truth debug information (1:1
        companion, optional)
    mc_particles : Table
        Truth particle table
    ext_mc_particles : Table
        Truth debug information (1:1 companion, optional)
    hf_candidates : Table
        Heavy-flavour candidate table
    hf_candidates_mc : Table
        Truth information of the candidates which have one, pointed at by
        their `mc_id`
    hf_candidates_mc_gen : Table
        Generator-level heavy-flavour particles
    conventions : dict
        External conventions the data was produced with (selection bits,
        enumerations, hash binning)
    """

    # Table names and the row type they hold
    _tables = (
        ("collisions", Collision),
        ("collision_masks", CollisionMask),
        ("downsample", Downsample),
        ("hashes", HashBin),
        ("particles", Particle),
        ("ext_particles", ExtParticle),
        ("particle_indexes", ParticleIndex),
        ("labels", Label),
        ("ext_labels", ExtLabel),
        ("mc_particles", McParticle),
        ("ext_mc_particles", ExtMcParticle),
        ("hf_candidates", HFCandidate),
        ("hf_candidates_mc", HFCandidateMC),
        ("hf_candidates_mc_gen", HFCandidateMCGen),
    )

    # Companion tables as (companion, owner) pairs
    _companions = (
        ("collision_masks", "collisions"),
        ("downsample", "collisions"),
        ("hashes", "collisions"),
        ("ext_particles", "particles"),
        ("particle_indexes", "particles"),
        ("labels", "particles"),
        ("ext_labels", "particles"),
        ("ext_mc_particles", "mc_particles"),
    )

    def __init__(self, conventions=None, **tables):
        """Initialize the store from its tables.

        Parameters
        ----------
        conventions : dict, optional
            External conventions the data was produced with
        **tables : dict
            One :class:`Table` per table name. Missing tables are empty.
        """
        unknown = set(tables).difference(name for name, _ in self._tables)
        assert not unknown, f"Unknown table(s): {unknown}."

        for name, row_class in self._tables:
            table = tables.get(name)
            if table is None:
                table = Table.empty(row_class)
            assert table.row_class is row_class, (
                f"The `{name}` table must hold `{row_class.__name__}` rows."
            )
            setattr(self, name, table)

        self.conventions = dict(conventions or {})

    def __repr__(self):
        sizes = ", ".join(f"{name}={len(getattr(self, name))}" for name, _ in self._tables)
        return f"DerivedData({sizes})"

    @classmethod
    def table_names(cls):
        return [name for name, _ in cls._tables]

    @classmethod
    def table_classes(cls):
        """Lists the tables of the store and the row type they hold.

        Returns
        -------
        List[Tuple[str, type]]
            (table name, row class) pairs
        """
        return list(cls._tables)

    @property
    def is_mc(self):
        return len(self.labels) > 0

    def validate(self):
        """Runs all the consistency checks of the data model.

        Raises the first :class:`CommitError` encountered.
        """
        # Enumerations and dense identifiers
        for name, _ in self._tables:
            integrity.check_enums(getattr(self, name))
        for name in ("collisions", "particles", "mc_particles", "hf_candidates"):
            integrity.check_dense_ids(getattr(self, name))

        # Companion tables
        for companion, owner in self._companions:
            integrity.check_companion(
                getattr(self, owner), getattr(self, companion), companion
            )

        # Weak references to the collision table
        num_collisions = len(self.collisions)
        for name in ("particles", "hf_candidates", "hf_candidates_mc_gen"):
            integrity.check_references(
                getattr(self, name), "collision_id", num_collisions, "collisions"
            )

        # Self-referential daughter links and truth labels
        integrity.check_children(self.particles)
        integrity.check_labels(self.labels, len(self.mc_particles))
        integrity.check_references(
            self.ext_labels, "ext_mc_particle_id", len(self.ext_mc_particles),
            "ext_mc_particles", nullable=True, error=LabelRangeError
        )

        # Optional truth information of the candidates
        integrity.check_references(
            self.hf_candidates, "mc_id", len(self.hf_candidates_mc),
            "hf_candidates_mc", nullable=True
        )

    def check_quality(self):
        """Checks the consistency of the committed data.

        Committed data is trusted: this check is never run implicitly, and
        an inconsistency is reported, never corrected.

        Raises
        ------
        DataQualityError
            If any consistency check fails
        """
        try:
            self.validate()
        except CommitError as err:
            raise DataQualityError(str(err)) from err

    def particles_in(self, collision_id):
        """Finds the particles which belong to one collision.

        Parameters
        ----------
        collision_id : int
            Index of the collision

        Returns
        -------
        np.ndarray
            (M) Indexes of the particles, in production order
        """
        return np.flatnonzero(self.particles.column("collision_id") == collision_id)

    def candidates_in(self, collision_id):
        """Finds the heavy-flavour candidates which belong to one collision.

        Parameters
        ----------
        collision_id : int
            Index of the collision

        Returns
        -------
        np.ndarray
            (M) Indexes of the candidates, in production order
        """
        return np.flatnonzero(
            self.hf_candidates.column("collision_id") == collision_id
        )

    def children(self, particle_id):
        """Fetches the daughter indexes of one particle.

        Parameters
        ----------
        particle_id : int
            Index of the particle

        Returns
        -------
        np.ndarray
            (0-2) Indexes of the daughter particles
        """
        values, offsets = self.particles.var_column("children_ids")
        return values[offsets[particle_id] : offsets[particle_id + 1]]

    def truth(self, particle_id):
        """Fetches the truth particle a selected particle is matched to.

        Parameters
        ----------
        particle_id : int
            Index of the particle

        Returns
        -------
        McParticle
            Matched truth particle, `None` if unmatched or if the data has no
            truth information
        """
        if not len(self.labels):
            return None

        mc_id = self.labels.column("mc_particle_id")[particle_id]
        if mc_id == INVALID_INDEX:
            return None

        return self.mc_particles[mc_id]

    def ext_truth(self, particle_id):
        """Fetches the truth debug information a selected particle is matched to.

        Parameters
        ----------
        particle_id : int
            Index of the particle

        Returns
        -------
        ExtMcParticle
            Matched truth debug row, `None` if unmatched or if the data has no
            such links
        """
        if not len(self.ext_labels):
            return None

        ext_id = self.ext_labels.column("ext_mc_particle_id")[particle_id]
        if ext_id == INVALID_INDEX:
            return None

        return self.ext_mc_particles[ext_id]

    def candidate_truth(self, candidate_id):
        """Fetches the truth information of a heavy-flavour candidate.

        Parameters
        ----------
        candidate_id : int
            Index of the candidate

        Returns
        -------
        HFCandidateMC
            Truth information, `None` if the candidate has none
        """
        mc_id = self.hf_candidates.column("mc_id")[candidate_id]
        if mc_id == INVALID_INDEX:
            return None

        return self.hf_candidates_mc[mc_id]

    def select_particles(self, cut=0, pidcut=0, part_type=None, collision_id=None):
        """Finds the particles which pass a set of requirements.

        Parameters
        ----------
        cut : Union[int, BitMask], default 0
            Required selection bits
        pidcut : Union[int, BitMask], default 0
            Required PID selection bits
        part_type : int, optional
            Required particle type
        collision_id : int, optional
            Required collision

        Returns
        -------
        np.ndarray
            (M) Indexes of the selected particles
        """
        table = self.particles
        mask = passes(table.column("cut"), cut) & passes(table.column("pidcut"), pidcut)
        if part_type is not None:
            mask &= table.column("part_type") == int(part_type)
        if collision_id is not None:
            mask &= table.column("collision_id") == collision_id

        return np.flatnonzero(mask)

"""Production of derived data, one event at a time.

A :class:`ProductionBatch` owns the rows of a set of events. Each event is
written through a single :class:`EventWriter`, which buffers its rows and
only exposes them to the batch when the event closes without error. The
collision row is appended last, once all the particles of the event have been
classified. A committed batch becomes a read-only :class:`DerivedData` store,
and its event-mixing hash bins are assigned from the stored collision columns.

Indexes handed out by a writer (particles, truth particles, candidates) are
local to the batch. They become global indexes when batches are merged.
"""

from femtoderived.data.collision import Collision, CollisionMask, Downsample, HashBin
from femtoderived.data.errors import WriteOnceError
from femtoderived.data.hf import HFCandidate, HFCandidateMC, HFCandidateMCGen
from femtoderived.data.integrity import check_row_enums
from femtoderived.data.mc import ExtLabel, ExtMcParticle, Label, McParticle
from femtoderived.data.particle import ExtParticle, Particle, ParticleIndex
from femtoderived.data.store import DerivedData
from femtoderived.data.table import Table
from femtoderived.utils.bitmask import BitMask
from femtoderived.utils.globals import PRIM_ORIG, TRACK_PTYPE
from femtoderived.utils.logger import logger

__all__ = ["ProductionBatch", "EventWriter"]


def _as_row(row_class, value):
    """Builds a row from a row object or a dictionary of attributes."""
    if isinstance(value, row_class):
        return value
    if isinstance(value, dict):
        return row_class(**value)

    raise TypeError(
        f"Expected a `{row_class.__name__}` row or a dictionary, got "
        f"`{type(value).__name__}`."
    )


class EventWriter:
    """Single writer of the rows of one event.

    Used as a context manager, obtained from :meth:`ProductionBatch.event`.
    If an exception is raised within the context, none of the rows of the
    event are kept and the exception propagates.

    Attributes
    ----------
    collision_id : int
        Index the collision of this event will have in its batch
    """

    def __init__(self, batch, collision):
        """Initialize the writer.

        Parameters
        ----------
        batch : ProductionBatch
            Batch which owns the event
        collision : Collision
            Collision row of the event, appended when the event closes
        """
        self._batch = batch
        self._collision = collision
        self.collision_id = collision.id

        # Rows are buffered until the event closes
        self._rows = {name: [] for name in DerivedData.table_names()}
        self._offsets = {
            name: batch.num_rows(name)
            for name in (
                "particles", "mc_particles", "hf_candidates", "hf_candidates_mc"
            )
        }
        self._masks = None
        self._downsample = None
        self._open = False

    def __enter__(self):
        self._open = True
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self._open = False
        rows = None
        try:
            if exc_type is None:
                rows = self._close()
        finally:
            if rows is None:
                logger.warning(
                    "Discarding event %d of the production batch: %s",
                    self.collision_id, exc_value or "it could not be closed"
                )
            self._batch._release(self, rows)

        return False

    def _close(self):
        """Appends the collision and its companions, last."""
        rows = self._rows
        rows["collisions"].append(self._collision)
        rows["collision_masks"].append(self._masks or CollisionMask())
        if self._downsample is not None:
            rows["downsample"].append(self._downsample)

        return rows

    def _check_open(self):
        """Checks that the event still accepts rows."""
        if not self._open:
            raise WriteOnceError(
                f"Event {self.collision_id} is closed, it cannot be written to."
            )

    def _next(self, name):
        """Index of the next row of an indexed table, in the batch."""
        return self._offsets[name] + len(self._rows[name])

    def add_particle(
        self,
        pt,
        eta,
        phi,
        part_type=TRACK_PTYPE,
        cut=0,
        pidcut=0,
        temp_fit_var=0.0,
        children_ids=(),
        m_lambda=0.0,
        m_anti_lambda=0.0,
        m_kaon=0.0,
        ext=None,
        label=None,
        ext_label=None,
        track_id=None,
    ):
        """Writes one selected particle.

        The daughters of a particle must be written before it.

        Parameters
        ----------
        pt : float
            Transverse momentum in GeV/c
        eta : float
            Pseudorapidity
        phi : float
            Azimuthal angle in radians
        part_type : int, default TRACK_PTYPE
            Enumerated type of the particle
        cut : Union[int, BitMask], default 0
            Selection criteria satisfied by the particle
        pidcut : Union[int, BitMask], default 0
            PID selection criteria satisfied by the particle
        temp_fit_var : float, default 0.
            Observable for the template fits
        children_ids : List[int], optional
            Batch indexes of the (up to two) daughters of the particle
        m_lambda, m_anti_lambda, m_kaon : float, default 0.
            Invariant masses under each hypothesis (V0s and cascades)
        ext : Union[ExtParticle, dict], optional
            Detector-level debug information
        label : int, optional
            Batch index of the matched truth particle, `None` if unmatched.
            Only allowed in Monte-Carlo batches.
        ext_label : int, optional
            Batch index of the matched truth debug row, `None` if unmatched.
            Only allowed in Monte-Carlo batches.
        track_id : int, optional
            External identifier of the raw track the particle was built from

        Returns
        -------
        int
            Index of the particle in the batch
        """
        self._check_open()
        index = self._next("particles")
        particle = Particle(
            id=index,
            collision_id=self.collision_id,
            pt=pt,
            eta=eta,
            phi=phi,
            part_type=int(part_type),
            cut=BitMask(cut).value,
            pidcut=BitMask(pidcut).value,
            temp_fit_var=temp_fit_var,
            children_ids=list(children_ids),
            m_lambda=m_lambda,
            m_anti_lambda=m_anti_lambda,
            m_kaon=m_kaon,
        )

        if label is not None or ext_label is not None:
            assert self._batch.is_mc, "Cannot label particles of a data batch."
        if ext is not None:
            ext = _as_row(ExtParticle, ext)

        rows = self._rows
        rows["particles"].append(particle)
        if ext is not None:
            rows["ext_particles"].append(ext)
        if track_id is not None:
            rows["particle_indexes"].append(ParticleIndex(track_id=track_id))
        if self._batch.is_mc:
            rows["labels"].append(Label(mc_particle_id=label))
            rows["ext_labels"].append(ExtLabel(ext_mc_particle_id=ext_label))

        return index

    def add_mc_particle(
        self, pdg_mc_truth, pt, eta, phi, part_origin_mc_truth=PRIM_ORIG, ext=None
    ):
        """Writes one truth-level particle.

        Parameters
        ----------
        pdg_mc_truth : int
            Signed PDG code of the particle
        pt : float
            True transverse momentum in GeV/c
        eta : float
            True pseudorapidity
        phi : float
            True azimuthal angle in radians
        part_origin_mc_truth : int, default PRIM_ORIG
            Enumerated origin of the particle
        ext : Union[int, ExtMcParticle, dict], optional
            Debug information, or the PDG code of the mother particle

        Returns
        -------
        int
            Index of the truth particle in the batch
        """
        self._check_open()
        assert self._batch.is_mc, "Cannot write truth particles in a data batch."
        index = self._next("mc_particles")
        if ext is not None:
            if not isinstance(ext, (ExtMcParticle, dict)):
                ext = ExtMcParticle(mother_pdg=int(ext))
            ext = _as_row(ExtMcParticle, ext)

        self._rows["mc_particles"].append(
            McParticle(
                id=index,
                part_origin_mc_truth=int(part_origin_mc_truth),
                pdg_mc_truth=pdg_mc_truth,
                pt=pt,
                eta=eta,
                phi=phi,
            )
        )
        if ext is not None:
            self._rows["ext_mc_particles"].append(ext)

        return index

    def add_hf_candidate(self, mc=None, **attrs):
        """Writes one heavy-flavour candidate.

        Parameters
        ----------
        mc : Union[HFCandidateMC, dict], optional
            Reconstruction-level truth information of the candidate. Only
            allowed in Monte-Carlo batches.
        **attrs : dict
            Attributes of the candidate (see :class:`HFCandidate`)

        Returns
        -------
        int
            Index of the candidate in the batch
        """
        self._check_open()
        assert not {"id", "collision_id", "mc_id"}.intersection(attrs), (
            "The indexes of a candidate are assigned by the writer."
        )
        index = self._next("hf_candidates")
        mc_id = None
        if mc is not None:
            assert self._batch.is_mc, "Cannot match candidates of a data batch."
            mc = _as_row(HFCandidateMC, mc)
            mc_id = self._next("hf_candidates_mc")

        candidate = HFCandidate(
            id=index, collision_id=self.collision_id, mc_id=mc_id, **attrs
        )

        self._rows["hf_candidates"].append(candidate)
        if mc is not None:
            self._rows["hf_candidates_mc"].append(mc)

        return index

    def add_hf_gen(self, **attrs):
        """Writes one generator-level heavy-flavour particle.

        Parameters
        ----------
        **attrs : dict
            Attributes of the particle (see :class:`HFCandidateMCGen`)
        """
        self._check_open()
        assert "collision_id" not in attrs, (
            "The collision index is assigned by the writer."
        )
        self._rows["hf_candidates_mc_gen"].append(
            HFCandidateMCGen(collision_id=self.collision_id, **attrs)
        )

    def set_masks(self, track_one=0, track_two=0, track_three=0):
        """Sets the mixing-pool eligibility of the collision, once.

        Parameters
        ----------
        track_one, track_two, track_three : Union[int, BitMask], default 0
            Selections satisfied by at least one particle, for each role
        """
        self._check_open()
        if self._masks is not None:
            raise WriteOnceError(
                f"The masks of collision {self.collision_id} are already set."
            )

        self._masks = CollisionMask(
            bitmask_track_one=BitMask(track_one).value,
            bitmask_track_two=BitMask(track_two).value,
            bitmask_track_three=BitMask(track_three).value,
        )

    def set_downsample(self, downsample):
        """Sets the downsampling flag of the collision, once.

        Parameters
        ----------
        downsample : bool
            Downsampling flag
        """
        self._check_open()
        if self._downsample is not None:
            raise WriteOnceError(
                f"The downsampling flag of collision {self.collision_id} is "
                "already set."
            )

        self._downsample = Downsample(downsample=bool(downsample))


class ProductionBatch:
    """Set of events produced by a single worker.

    Attributes
    ----------
    config : ProductionConfig
        Production configuration (selection bits, hash binning)
    is_mc : bool
        Whether the batch holds Monte-Carlo truth information
    """

    def __init__(self, config=None, is_mc=False):
        """Initialize an empty batch.

        Parameters
        ----------
        config : ProductionConfig, optional
            Production configuration. Without one, no hash bins are assigned
            when the batch is committed.
        is_mc : bool, default False
            Whether the batch holds Monte-Carlo truth information
        """
        self.config = config
        self.is_mc = is_mc
        self._rows = {name: [] for name in DerivedData.table_names()}
        self._writer = None
        self._closed = False

    def __repr__(self):
        return (
            f"ProductionBatch(num_collisions={self.num_rows('collisions')}, "
            f"num_particles={self.num_rows('particles')}, is_mc={self.is_mc}, "
            f"closed={self._closed})"
        )

    @property
    def binner(self):
        return self.config.binner if self.config is not None else None

    @property
    def closed(self):
        return self._closed

    def num_rows(self, name):
        """Number of rows of one table written so far.

        Parameters
        ----------
        name : str
            Table name

        Returns
        -------
        int
            Number of rows
        """
        return len(self._rows[name])

    def rows(self, name):
        """Rows of one table written so far.

        Parameters
        ----------
        name : str
            Table name

        Returns
        -------
        List[DataBase]
            Rows of the table, in production order
        """
        return list(self._rows[name])

    def _check_writeable(self):
        """Checks that the batch still accepts events."""
        if self._closed:
            raise WriteOnceError("The production batch is closed.")

    def event(self, **collision_attrs):
        """Opens a new event.

        Parameters
        ----------
        **collision_attrs : dict
            Attributes of the collision (see :class:`Collision`)

        Returns
        -------
        EventWriter
            Writer of the event, to be used as a context manager
        """
        self._check_writeable()
        if self._writer is not None:
            raise RuntimeError(
                f"Event {self._writer.collision_id} is still open, a batch can "
                "only be written by one event writer at a time."
            )
        assert "id" not in collision_attrs, (
            "The collision index is assigned by the batch."
        )

        collision = Collision(id=self.num_rows("collisions"), **collision_attrs)
        self._writer = EventWriter(self, collision)

        return self._writer

    def _release(self, writer, rows):
        """Closes an event, keeping its rows if provided."""
        assert writer is self._writer, "This writer does not own the batch."
        self._writer = None
        if rows is not None:
            for name, values in rows.items():
                self._rows[name].extend(values)

    def _extend(self, rows):
        """Appends rows which were already assigned batch indexes."""
        self._check_writeable()
        for name, values in rows.items():
            self._rows[name].extend(values)

    def discard(self):
        """Cancels the whole batch. None of its rows are ever exposed."""
        if self._writer is not None:
            raise RuntimeError("Cannot discard a batch while an event is open.")

        num_collisions = self.num_rows("collisions")
        self._rows = {name: [] for name in self._rows}
        self._closed = True
        logger.info("Discarded a production batch of %d events.", num_collisions)

    def commit(self):
        """Validates the batch and exposes it as read-only data.

        Returns
        -------
        DerivedData
            Committed data

        Raises
        ------
        CommitError
            If any row of the batch is invalid
        """
        self._check_writeable()
        if self._writer is not None:
            raise RuntimeError("Cannot commit a batch while an event is open.")

        tables = {}
        for name, row_class in DerivedData.table_classes():
            check_row_enums(row_class, self._rows[name])
            tables[name] = Table.from_rows(row_class, self._rows[name])

        # Bins are assigned from the stored collision columns
        if self.binner is not None:
            bins = self.binner.assign(tables["collisions"])
            tables["hashes"] = Table(HashBin, {"bin": bins})

        conventions = self.config.conventions() if self.config is not None else {}
        data = DerivedData(conventions=conventions, **tables)
        data.validate()

        self._rows = {name: [] for name in self._rows}
        self._closed = True
        logger.info(
            "Committed %d collisions, %d particles, %d truth particles and "
            "%d heavy-flavour candidates.",
            len(data.collisions), len(data.particles),
            len(data.mc_particles), len(data.hf_candidates)
        )

        return data

"""Module with data class objects which represent Monte-Carlo truth links.

Each selected particle is either unmatched or matched to exactly one truth
particle, through a :class:`Label` row joined to the particle table. The
decision is taken once, at production time.

A truth particle classified as `FAKE` or `WRONG_COLLISION` may still be
pointed at by a label: the label then refers to the nearest truth candidate
and is kept for debugging purposes.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from femtoderived.math import dynamic
from femtoderived.utils.globals import (
    FAKE_ORIG,
    ORIGIN_LABELS,
    PRIM_ORIG,
    TYPE_DTYPE,
    WCOLL_ORIG,
)

from .base import DataBase

__all__ = ["McParticle", "ExtMcParticle", "Label", "ExtLabel"]


@dataclass(eq=False)
class McParticle(DataBase):
    """Truth-level particle information.

    Attributes
    ----------
    id : int
        Index of the truth particle in the truth table
    part_origin_mc_truth : int
        Enumerated origin of the particle (see `ParticleOriginMCTruth`)
    pdg_mc_truth : int
        Signed PDG code of the particle
    pt : float
        True transverse momentum in GeV/c
    eta : float
        True pseudorapidity
    phi : float
        True azimuthal angle in radians
    """

    id: int = -1
    part_origin_mc_truth: int = PRIM_ORIG
    pdg_mc_truth: int = 0
    pt: float = 0.0
    eta: float = 0.0
    phi: float = 0.0

    # Stored columns
    _dtypes = (
        ("id", np.int64),
        ("part_origin_mc_truth", TYPE_DTYPE),
        ("pdg_mc_truth", np.int32),
        ("pt", np.float32),
        ("eta", np.float32),
        ("phi", np.float32),
    )

    # Index attributes
    _index_attrs = ("id",)

    # Enumerated attributes
    _enum_attrs = (("part_origin_mc_truth", tuple(ORIGIN_LABELS.items())),)

    # Derived attributes
    _dynamic_attrs = (
        ("theta", dynamic.theta, ("eta",)),
        ("px", dynamic.px, ("pt", "phi")),
        ("py", dynamic.py, ("pt", "phi")),
        ("pz", dynamic.pz, ("pt", "eta")),
        ("p", dynamic.p, ("pt", "eta")),
    )

    @property
    def theta(self):
        return dynamic.theta(self.eta)

    @property
    def px(self):
        return dynamic.px(self.pt, self.phi)

    @property
    def py(self):
        return dynamic.py(self.pt, self.phi)

    @property
    def pz(self):
        return dynamic.pz(self.pt, self.eta)

    @property
    def p(self):
        return dynamic.p(self.pt, self.eta)

    @property
    def is_debug_match(self):
        """Whether a label to this particle is only kept as a debug aid.

        Returns
        -------
        bool
            `True` if the origin is `FAKE` or `WRONG_COLLISION`
        """
        return self.part_origin_mc_truth in (FAKE_ORIG, WCOLL_ORIG)


@dataclass(eq=False)
class ExtMcParticle(DataBase):
    """Debug information of a truth-level particle.

    Attributes
    ----------
    mother_pdg : int
        PDG code of the primary particle at the top of the decay chain
    """

    mother_pdg: int = 0

    # Stored columns
    _dtypes = (("mother_pdg", np.int32),)


@dataclass(eq=False)
class Label(DataBase):
    """Link between a selected particle and its truth particle.

    Attributes
    ----------
    mc_particle_id : int, optional
        Index of the matched truth particle, `None` if unmatched
    """

    mc_particle_id: Optional[int] = None

    # Stored columns
    _dtypes = (("mc_particle_id", np.int64),)

    # Index attributes
    _index_attrs = ("mc_particle_id",)

    # Index attributes which may be absent
    _nullable_attrs = ("mc_particle_id",)

    # A truth match is decided once
    _write_once_attrs = ("mc_particle_id",)

    @property
    def is_matched(self):
        return self.mc_particle_id is not None


@dataclass(eq=False)
class ExtLabel(DataBase):
    """Link between a selected particle and the debug information of its
    truth particle.

    Attributes
    ----------
    ext_mc_particle_id : int, optional
        Index of the matched truth debug row, `None` if unmatched
    """

    ext_mc_particle_id: Optional[int] = None

    # Stored columns
    _dtypes = (("ext_mc_particle_id", np.int64),)

    # Index attributes
    _index_attrs = ("ext_mc_particle_id",)

    # Index attributes which may be absent
    _nullable_attrs = ("ext_mc_particle_id",)

    # A truth match is decided once
    _write_once_attrs = ("ext_mc_particle_id",)

    @property
    def is_matched(self):
        return self.ext_mc_particle_id is not None

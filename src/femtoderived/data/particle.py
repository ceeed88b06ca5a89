"""Module with data class objects which represent selected particles.

A particle row is one selected track or decay candidate (V0, cascade, their
daughters, charm hadrons) tied to a collision. Its kinematics are stored as
the canonical (pt, eta, phi) triple only; every other momentum-frame quantity
is a dynamic column derived from it on access.
"""

from dataclasses import dataclass

import numpy as np

from femtoderived.math import dynamic
from femtoderived.utils.bitmask import BitMask
from femtoderived.utils.globals import (
    CUT_DTYPE,
    MASS_HYPO_PTYPES,
    PART_TYPE_LABELS,
    SIGN_DTYPE,
    TRACK_PTYPE,
    TYPE_DTYPE,
)

from .base import DataBase

__all__ = ["Particle", "ExtParticle", "ParticleIndex"]


@dataclass(eq=False)
class Particle(DataBase):
    """Selected particle information.

    Attributes
    ----------
    id : int
        Index of the particle in the particle table
    collision_id : int
        Index of the collision the particle belongs to
    pt : float
        Transverse momentum in GeV/c
    eta : float
        Pseudorapidity
    phi : float
        Azimuthal angle in radians
    part_type : int
        Enumerated type of the particle (see `ParticleType`)
    cut : int
        Bit-wise container of the selection criteria satisfied
    pidcut : int
        Bit-wise container of the PID selection criteria satisfied
    temp_fit_var : float
        Observable for the template fits (DCAxy for tracks and daughters,
        cosine of the pointing angle for V0s and cascades)
    children_ids : np.ndarray
        (0-2) Indexes of the daughter particles in the same batch
    m_lambda : float
        Invariant mass of the candidate under the Lambda hypothesis
    m_anti_lambda : float
        Invariant mass of the candidate under the anti-Lambda hypothesis
    m_kaon : float
        Invariant mass of the candidate under the K0s hypothesis
    """

    id: int = -1
    collision_id: int = -1
    pt: float = 0.0
    eta: float = 0.0
    phi: float = 0.0
    part_type: int = TRACK_PTYPE
    cut: int = 0
    pidcut: int = 0
    temp_fit_var: float = 0.0
    children_ids: np.ndarray = None
    m_lambda: float = 0.0
    m_anti_lambda: float = 0.0
    m_kaon: float = 0.0

    # Stored columns
    _dtypes = (
        ("id", np.int64),
        ("collision_id", np.int64),
        ("pt", np.float32),
        ("eta", np.float32),
        ("phi", np.float32),
        ("part_type", TYPE_DTYPE),
        ("cut", CUT_DTYPE),
        ("pidcut", CUT_DTYPE),
        ("temp_fit_var", np.float32),
        ("m_lambda", np.float32),
        ("m_anti_lambda", np.float32),
        ("m_kaon", np.float32),
    )

    # Variable-length attributes
    _var_length_attrs = (("children_ids", np.int64),)

    # Index attributes
    _index_attrs = ("id", "collision_id", "children_ids")

    # Enumerated attributes
    _enum_attrs = (("part_type", tuple(PART_TYPE_LABELS.items())),)

    # Selection containers are computed once, at production time
    _write_once_attrs = ("cut", "pidcut")

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
        """Polar angle of the particle in radians."""
        return dynamic.theta(self.eta)

    @property
    def px(self):
        """Momentum along x in GeV/c."""
        return dynamic.px(self.pt, self.phi)

    @property
    def py(self):
        """Momentum along y in GeV/c."""
        return dynamic.py(self.pt, self.phi)

    @property
    def pz(self):
        """Momentum along z in GeV/c."""
        return dynamic.pz(self.pt, self.eta)

    @property
    def p(self):
        """Total momentum in GeV/c."""
        return dynamic.p(self.pt, self.eta)

    @property
    def cut_mask(self):
        return BitMask(self.cut)

    @property
    def pidcut_mask(self):
        return BitMask(self.pidcut)

    @property
    def has_mass_hypotheses(self):
        """Whether the mass hypotheses of this particle are meaningful.

        Returns
        -------
        bool
            `True` for V0 and cascade candidates
        """
        return self.part_type in MASS_HYPO_PTYPES

    def passes(self, cut=0, pidcut=0):
        """Checks the particle against required selection and PID masks.

        Parameters
        ----------
        cut : Union[int, BitMask], default 0
            Required selection bits
        pidcut : Union[int, BitMask], default 0
            Required PID selection bits

        Returns
        -------
        bool
            `True` if all the required bits are set in both containers
        """
        return self.cut_mask.matches(cut) and self.pidcut_mask.matches(pidcut)


@dataclass(eq=False)
class ExtParticle(DataBase):
    """Detector-level debug information of a selected particle.

    Attributes
    ----------
    sign : int
        Sign of the track charge
    tpc_n_cls_found : int
        Number of TPC clusters
    tpc_n_cls_findable : int
        Number of findable TPC clusters
    tpc_n_cls_crossed_rows : int
        Number of TPC crossed rows
    tpc_n_cls_shared : int
        Number of shared TPC clusters
    tpc_inner_param : float
        Momentum at the inner wall of the TPC in GeV/c
    its_n_cls : int
        Number of ITS clusters
    its_n_cls_inner_barrel : int
        Number of ITS clusters in the inner barrel
    dca_xy : float
        Transverse distance of closest approach to the primary vertex in cm
    dca_z : float
        Longitudinal distance of closest approach to the primary vertex in cm
    tpc_signal : float
        TPC specific energy loss
    tpc_n_sigma_el, tpc_n_sigma_pi, tpc_n_sigma_ka, tpc_n_sigma_pr, tpc_n_sigma_de : float
        N-sigma separation with the TPC for each species hypothesis
    tof_n_sigma_el, tof_n_sigma_pi, tof_n_sigma_ka, tof_n_sigma_pr, tof_n_sigma_de : float
        N-sigma separation with the TOF for each species hypothesis
    daugh_dca : float
        Distance of closest approach between the daughters in cm
    trans_radius : float
        Transverse radius of the decay vertex in cm
    decay_vtx_x, decay_vtx_y, decay_vtx_z : float
        Position of the decay vertex in cm
    """

    sign: int = 0
    tpc_n_cls_found: int = 0
    tpc_n_cls_findable: int = 0
    tpc_n_cls_crossed_rows: int = 0
    tpc_n_cls_shared: int = 0
    tpc_inner_param: float = 0.0
    its_n_cls: int = 0
    its_n_cls_inner_barrel: int = 0
    dca_xy: float = 0.0
    dca_z: float = 0.0
    tpc_signal: float = 0.0
    tpc_n_sigma_el: float = 0.0
    tpc_n_sigma_pi: float = 0.0
    tpc_n_sigma_ka: float = 0.0
    tpc_n_sigma_pr: float = 0.0
    tpc_n_sigma_de: float = 0.0
    tof_n_sigma_el: float = 0.0
    tof_n_sigma_pi: float = 0.0
    tof_n_sigma_ka: float = 0.0
    tof_n_sigma_pr: float = 0.0
    tof_n_sigma_de: float = 0.0
    daugh_dca: float = 0.0
    trans_radius: float = 0.0
    decay_vtx_x: float = 0.0
    decay_vtx_y: float = 0.0
    decay_vtx_z: float = 0.0

    # Stored columns
    _dtypes = (
        ("sign", SIGN_DTYPE),
        ("tpc_n_cls_found", np.uint8),
        ("tpc_n_cls_findable", np.uint8),
        ("tpc_n_cls_crossed_rows", np.uint8),
        ("tpc_n_cls_shared", np.uint8),
        ("tpc_inner_param", np.float32),
        ("its_n_cls", np.uint8),
        ("its_n_cls_inner_barrel", np.uint8),
        ("dca_xy", np.float32),
        ("dca_z", np.float32),
        ("tpc_signal", np.float32),
        *((f"tpc_n_sigma_{s}", np.float32) for s in ("el", "pi", "ka", "pr", "de")),
        *((f"tof_n_sigma_{s}", np.float32) for s in ("el", "pi", "ka", "pr", "de")),
        ("daugh_dca", np.float32),
        ("trans_radius", np.float32),
        ("decay_vtx_x", np.float32),
        ("decay_vtx_y", np.float32),
        ("decay_vtx_z", np.float32),
    )

    # Derived attributes
    _dynamic_attrs = (
        (
            "tpc_crossed_rows_over_findable_cls",
            dynamic.crossed_rows_over_findable,
            ("tpc_n_cls_crossed_rows", "tpc_n_cls_findable"),
        ),
    )

    @property
    def tpc_crossed_rows_over_findable_cls(self):
        """Fraction of findable TPC clusters with a crossed row."""
        return dynamic.crossed_rows_over_findable(
            float(self.tpc_n_cls_crossed_rows), float(self.tpc_n_cls_findable)
        )


@dataclass(eq=False)
class ParticleIndex(DataBase):
    """Raw reconstruction track a selected particle was built from.

    Attributes
    ----------
    track_id : int
        External identifier of the reconstructed track. It is not an index
        in any table of this data model, and is never shifted on merge.
    """

    track_id: int = -1

    # Stored columns
    _dtypes = (("track_id", np.int64),)

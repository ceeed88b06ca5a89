"""Module with data class objects which represent heavy-flavour candidates.

Heavy-flavour candidates form an entity family parallel to the selected
particles: the two families are only correlated through the collision index.
The prongs of a candidate point at raw reconstruction track identifiers, not
at rows of the particle table.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from femtoderived.utils.globals import SIGN_DTYPE

from .base import DataBase

__all__ = ["HFCandidate", "HFCandidateMC", "HFCandidateMCGen", "ResultsHF"]


@dataclass(eq=False)
class HFCandidate(DataBase):
    """Two- or three-prong secondary-vertex candidate.

    Attributes
    ----------
    id : int
        Index of the candidate in the candidate table
    collision_id : int
        Index of the collision the candidate belongs to
    charge : int
        Charge of the candidate
    prong0_id, prong1_id : int
        External track identifiers of the first two prongs
    prong2_id : int, optional
        External track identifier of the third prong, `None` for two-prong
        candidates
    prong0_pt, prong1_pt, prong2_pt : float
        Transverse momentum of each prong in GeV/c
    prong0_eta, prong1_eta, prong2_eta : float
        Pseudorapidity of each prong
    prong0_phi, prong1_phi, prong2_phi : float
        Azimuthal angle of each prong
    candidate_sel_flag : int
        Selection flag of the candidate
    bdt_bkg : float
        ML score of the background hypothesis
    bdt_prompt : float
        ML score of the prompt hypothesis
    bdt_fd : float
        ML score of the feed-down hypothesis
    m : float
        Invariant mass in GeV/c^2
    pt : float
        Transverse momentum in GeV/c
    p : float
        Total momentum in GeV/c
    eta : float
        Pseudorapidity
    phi : float
        Azimuthal angle
    y : float
        Rapidity
    mc_id : int, optional
        Index of the reconstruction-level truth information of the candidate,
        `None` if the candidate has none
    """

    id: int = -1
    collision_id: int = -1
    charge: int = 0
    prong0_id: int = -1
    prong1_id: int = -1
    prong2_id: Optional[int] = None
    prong0_pt: float = 0.0
    prong1_pt: float = 0.0
    prong2_pt: float = 0.0
    prong0_eta: float = 0.0
    prong1_eta: float = 0.0
    prong2_eta: float = 0.0
    prong0_phi: float = 0.0
    prong1_phi: float = 0.0
    prong2_phi: float = 0.0
    candidate_sel_flag: int = 0
    bdt_bkg: float = -1.0
    bdt_prompt: float = -1.0
    bdt_fd: float = -1.0
    m: float = 0.0
    pt: float = 0.0
    p: float = 0.0
    eta: float = 0.0
    phi: float = 0.0
    y: float = 0.0
    mc_id: Optional[int] = None

    # Stored columns
    _dtypes = (
        ("id", np.int64),
        ("collision_id", np.int64),
        ("charge", SIGN_DTYPE),
        *((f"prong{i}_id", np.int64) for i in range(3)),
        *((f"prong{i}_pt", np.float32) for i in range(3)),
        *((f"prong{i}_eta", np.float32) for i in range(3)),
        *((f"prong{i}_phi", np.float32) for i in range(3)),
        ("candidate_sel_flag", np.int8),
        ("bdt_bkg", np.float32),
        ("bdt_prompt", np.float32),
        ("bdt_fd", np.float32),
        ("m", np.float32),
        ("pt", np.float32),
        ("p", np.float32),
        ("eta", np.float32),
        ("phi", np.float32),
        ("y", np.float32),
        ("mc_id", np.int64),
    )

    # Index attributes
    _index_attrs = ("id", "collision_id", "mc_id")

    # Attributes which may be absent
    _nullable_attrs = ("prong2_id", "mc_id")

    # A truth match is decided once
    _write_once_attrs = ("mc_id",)

    @property
    def num_prongs(self):
        return 2 if self.prong2_id is None else 3

    @property
    def is_matched(self):
        return self.mc_id is not None

    @property
    def prong_ids(self):
        """External track identifiers of all the prongs.

        Returns
        -------
        Tuple[int]
            (2) or (3) track identifiers
        """
        ids = (self.prong0_id, self.prong1_id)
        if self.prong2_id is not None:
            ids = (*ids, self.prong2_id)

        return ids

    def has_prong(self, track_id):
        """Checks whether a reconstruction track is one of the prongs.

        Parameters
        ----------
        track_id : int
            External track identifier

        Returns
        -------
        bool
            `True` if the track was used to build this candidate
        """
        return track_id in self.prong_ids


@dataclass(eq=False)
class HFCandidateMC(DataBase):
    """Reconstruction-level truth information of a candidate.

    Only the candidates which carry truth information have a row, which they
    point at through :attr:`HFCandidate.mc_id`.

    Attributes
    ----------
    flag_mc : int
        Decay channel flag of the matched truth candidate
    origin_mc_rec : int
        Origin (prompt, non-prompt) of the matched truth candidate
    """

    flag_mc: int = 0
    origin_mc_rec: int = 0

    # Stored columns
    _dtypes = (("flag_mc", np.int8), ("origin_mc_rec", np.int8))


@dataclass(eq=False)
class HFCandidateMCGen(DataBase):
    """Generator-level heavy-flavour particle.

    Attributes
    ----------
    collision_id : int
        Index of the collision the particle belongs to
    pt : float
        Transverse momentum in GeV/c
    eta : float
        Pseudorapidity
    phi : float
        Azimuthal angle
    y : float
        Rapidity
    flag_mc : int
        Decay channel flag
    origin_mc_gen : int
        Origin (prompt, non-prompt) of the particle
    """

    collision_id: int = -1
    pt: float = 0.0
    eta: float = 0.0
    phi: float = 0.0
    y: float = 0.0
    flag_mc: int = 0
    origin_mc_gen: int = 0

    # Stored columns
    _dtypes = (
        ("collision_id", np.int64),
        ("pt", np.float32),
        ("eta", np.float32),
        ("phi", np.float32),
        ("y", np.float32),
        ("flag_mc", np.int8),
        ("origin_mc_gen", np.int8),
    )

    # Index attributes
    _index_attrs = ("collision_id",)


@dataclass(eq=False)
class ResultsHF(DataBase):
    """Pair observables of one heavy-flavour/particle pair.

    The row only holds flat scalars: the results table grows with the
    square of the number of particles per event.

    Attributes
    ----------
    m : float
        Invariant mass of the candidate in GeV/c^2
    pt : float
        Transverse momentum of the candidate in GeV/c
    pt_assoc : float
        Transverse momentum of the associated particle in GeV/c
    bdt_bkg, bdt_prompt, bdt_fd : float
        ML scores of the candidate
    correlation : float
        Relative momentum k* of the pair in GeV/c
    kt : float
        Average transverse momentum of the pair in GeV/c
    mt : float
        Transverse mass of the pair in GeV/c^2
    mult : int
        Multiplicity of the collision
    mult_percentile : float
        Multiplicity percentile of the collision
    part_pair_sign : int
        Sign combination of the pair
    process_type : int
        Tag of the process which produced the pair (same event, mixed...)
    """

    m: float = 0.0
    pt: float = 0.0
    pt_assoc: float = 0.0
    bdt_bkg: float = -1.0
    bdt_prompt: float = -1.0
    bdt_fd: float = -1.0
    correlation: float = 0.0
    kt: float = 0.0
    mt: float = 0.0
    mult: int = 0
    mult_percentile: float = 0.0
    part_pair_sign: int = 0
    process_type: int = 0

    # Stored columns
    _dtypes = (
        ("m", np.float32),
        ("pt", np.float32),
        ("pt_assoc", np.float32),
        ("bdt_bkg", np.float32),
        ("bdt_prompt", np.float32),
        ("bdt_fd", np.float32),
        ("correlation", np.float32),
        ("kt", np.float32),
        ("mt", np.float32),
        ("mult", np.int32),
        ("mult_percentile", np.float32),
        ("part_pair_sign", SIGN_DTYPE),
        ("process_type", np.int64),
    )

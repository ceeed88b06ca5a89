"""Module which contains enumerated variables shared across the project.

The enumerations carry no behavior. Their display names live in the lookup
dictionaries of :mod:`femtoderived.utils.globals`.
"""

from enum import IntEnum

from .globals import *

__all__ = [
    "enum_factory",
    "ParticleType",
    "TrackType",
    "MomentumType",
    "ParticleOriginMCTruth",
    "MCType",
    "CollisionBinning",
]


def enum_factory(enum, value):
    """Parses an enumerated object from string name(s) to value(s).

    Parameters
    ----------
    enum : str
        Name of the enumerated type
    value : Union[str, List[str]]
        Name or names of the enumerated objects (from config)

    Returns
    -------
    Union[int, List[int]]
        Value or values of the enumerated objects
    """
    # Get the enumerated type
    ENUM_DICT = {
        "particle": ParticleType,
        "track": TrackType,
        "momentum": MomentumType,
        "origin": ParticleOriginMCTruth,
        "mc": MCType,
        "binning": CollisionBinning,
    }
    assert enum in ENUM_DICT, (
        f"Enumerated type not recognized: {enum}. Must be one of "
        f"{list(ENUM_DICT.keys())}."
    )
    enum = ENUM_DICT[enum]

    # Translate enumerated strings into values
    names = [value] if isinstance(value, str) else value
    values = []
    for v in names:
        if not hasattr(enum, v.upper()):
            raise ValueError(
                f"Enumerated object not recognized: {v}. Must be one "
                f"of {[e.name for e in enum]}."
            )
        values.append(getattr(enum, v.upper()).value)

    return values[0] if isinstance(value, str) else values


class ParticleType(IntEnum):
    """Enumerates the types of selected objects."""

    TRACK = TRACK_PTYPE
    V0 = V0_PTYPE
    V0_CHILD = V0CH_PTYPE
    CASCADE = CASC_PTYPE
    CASCADE_BACHELOR = CASCB_PTYPE
    CHARM_HADRON = CHARM_PTYPE


class TrackType(IntEnum):
    """Enumerates the child types of a track."""

    NO_CHILD = NOCH_TTYPE
    POS_CHILD = POSCH_TTYPE
    NEG_CHILD = NEGCH_TTYPE


class MomentumType(IntEnum):
    """Enumerates the momentum definitions used in the analysis."""

    PT = PT_MTYPE
    PRECO = PRECO_MTYPE
    PTPC = PTPC_MTYPE


class ParticleOriginMCTruth(IntEnum):
    """Enumerates the possible MC truth origins of a particle."""

    PRIMARY = PRIM_ORIG
    SECONDARY = SEC_ORIG
    MATERIAL = MAT_ORIG
    NOT_PRIMARY = NPRIM_ORIG
    FAKE = FAKE_ORIG
    WRONG_COLLISION = WCOLL_ORIG
    SECONDARY_DAUGHTER_LAMBDA = SECLAM_ORIG
    SECONDARY_DAUGHTER_SIGMA_PLUS = SECSIG_ORIG
    ELSE = ELSE_ORIG


class MCType(IntEnum):
    """Distinguishes reconstructed from truth-level quantities."""

    RECON = RECO_MCTYPE
    TRUTH = TRUTH_MCTYPE


class CollisionBinning(IntEnum):
    """Enumerates the collision binning methods used for event mixing."""

    MULT = MULT_BINNING
    MULT_PERCENTILE = PERC_BINNING
    MULT_MULT_PERCENTILE = MULT_PERC_BINNING

"""Module which contains all global variables shared across the project."""

import numpy as np

# Value of an index attribute which does not point to anything
INVALID_INDEX = -1

# Hash bin assigned to collisions which must not be mixed
INVALID_BIN = -1

# Bit-wise selection containers (cut, pidcut, collision masks)
CUT_DTYPE = np.uint32
CUT_NBITS = 32

# Fixed representation of the enumerated tags and of charge/sign fields
TYPE_DTYPE = np.uint8
SIGN_DTYPE = np.int8

# Maximum number of children a particle can reference
MAX_CHILDREN = 2

# Particle type of each selected object (cut container convention)
TRACK_PTYPE = 0 # Track
V0_PTYPE    = 1 # V0
V0CH_PTYPE  = 2 # Child track of a V0
CASC_PTYPE  = 3 # Cascade
CASCB_PTYPE = 4 # Bachelor track of a cascade
CHARM_PTYPE = 5 # Charm hadron

# Particle types which carry meaningful mass hypotheses
MASS_HYPO_PTYPES = (V0_PTYPE, CASC_PTYPE)

# Child type of a track
NOCH_TTYPE  = 0 # Not a V0 child
POSCH_TTYPE = 1 # Positive V0 child
NEGCH_TTYPE = 2 # Negative V0 child

# Momentum type used to fill histograms
PT_MTYPE    = 0 # Transverse momentum
PRECO_MTYPE = 1 # Reconstructed momentum at the vertex
PTPC_MTYPE  = 2 # Momentum at the inner wall of the TPC

# Origin of a particle according to the MC truth
PRIM_ORIG   = 0 # Primary track or V0
SEC_ORIG    = 1 # Particle from a decay
MAT_ORIG    = 2 # Particle from the material
NPRIM_ORIG  = 3 # Not primary (compatibility with older productions)
FAKE_ORIG   = 4 # Does not have the PDG code of the analysed particle
WCOLL_ORIG  = 5 # Associated to the wrong collision
SECLAM_ORIG = 6 # Daughter of a Lambda decay
SECSIG_ORIG = 7 # Daughter of a Sigma+ decay
ELSE_ORIG   = 8 # None of the above

# Reconstructed or truth-level quantity
RECO_MCTYPE  = 0
TRUTH_MCTYPE = 1

# Methods used to bin collisions for event mixing
MULT_BINNING      = 0 # Number of charged tracks
PERC_BINNING      = 1 # Multiplicity percentile
MULT_PERC_BINNING = 2 # Number of charged tracks and multiplicity percentile

# Display names of the particle types
PART_TYPE_LABELS = {
    TRACK_PTYPE: "Tracks",
    V0_PTYPE: "V0",
    V0CH_PTYPE: "V0Child",
    CASC_PTYPE: "Cascade",
    CASCB_PTYPE: "CascadeBachelor",
    CHARM_PTYPE: "CharmHadron",
}

# Histogram holding the template fit variable of each particle type
TEMP_FIT_VAR_LABELS = {
    TRACK_PTYPE: "/hDCAxy",
    V0_PTYPE: "/hCPA",
    V0CH_PTYPE: "/hDCAxy",
    CASC_PTYPE: "/hCPA",
    CASCB_PTYPE: "/hDCAxy",
}

# Display names of the track types
TRACK_TYPE_LABELS = {NOCH_TTYPE: "Trk", POSCH_TTYPE: "Pos", NEGCH_TTYPE: "Neg"}

# Display names of the momentum types
MOMENTUM_TYPE_LABELS = {PT_MTYPE: "pt", PRECO_MTYPE: "preco", PTPC_MTYPE: "ptpc"}

# Display suffixes of the MC truth origins
ORIGIN_LABELS = {
    PRIM_ORIG: "_Primary",
    SEC_ORIG: "_Secondary",
    MAT_ORIG: "_Material",
    NPRIM_ORIG: "_NotPrimary",
    FAKE_ORIG: "_Fake",
    WCOLL_ORIG: "_WrongCollision",
    SECLAM_ORIG: "_SecondaryDaughterLambda",
    SECSIG_ORIG: "_SecondaryDaughterSigmaPlus",
    ELSE_ORIG: "_Else",
}

# Display suffixes of the reconstructed/truth quantities
MC_TYPE_LABELS = {RECO_MCTYPE: "", TRUTH_MCTYPE: "_MC"}

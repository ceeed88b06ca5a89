"""Grouping of committed collisions into event-mixing pools.

Collisions are mixed with the collisions which share their hash bin. The
invalid bin is never mixed. Pairs are produced in a deterministic order which
only depends on the production order of the collisions.

This module also provides the helpers used to remove auto-correlations, i.e.
pairs of objects which were built from the same reconstructed tracks.
"""

from collections import defaultdict

import numpy as np

from femtoderived.data.particle import ParticleIndex
from femtoderived.utils.bitmask import passes
from femtoderived.utils.globals import INVALID_BIN

__all__ = ["MixingPool", "share_children", "shares_prong"]

# Columns of the collision mask table, per particle role
_ROLE_ATTRS = ("bitmask_track_one", "bitmask_track_two", "bitmask_track_three")


class MixingPool:
    """Mixing pools of a set of collisions.

    Attributes
    ----------
    bins : np.ndarray
        (N) Hash bin of each collision
    eligible : np.ndarray
        (N) Whether each collision can take part in the mixing
    """

    def __init__(self, bins, eligible=None):
        """Initialize the pools.

        Parameters
        ----------
        bins : np.ndarray
            (N) Hash bin of each collision
        eligible : np.ndarray, optional
            (N) Whether each collision can take part in the mixing. By
            default, all collisions are eligible.
        """
        self.bins = np.asarray(bins, dtype=np.int64)
        if eligible is None:
            eligible = np.ones(len(self.bins), dtype=bool)
        self.eligible = np.asarray(eligible, dtype=bool)
        assert len(self.eligible) == len(self.bins), (
            "Must provide one eligibility flag per collision."
        )

        # Group the eligible collisions with a valid bin, in production order
        self._groups = defaultdict(list)
        for i in np.flatnonzero(self.eligible & (self.bins != INVALID_BIN)):
            self._groups[int(self.bins[i])].append(int(i))

    @classmethod
    def from_data(cls, data, role=None, required=0):
        """Builds the mixing pools of committed data.

        Parameters
        ----------
        data : DerivedData
            Committed data, with a hash bin for each collision
        role : int, optional
            Particle role (0, 1 or 2). If provided, only the collisions whose
            mask for this role holds all the required bits are eligible.
        required : Union[int, BitMask], default 0
            Required bits of the collision mask

        Returns
        -------
        MixingPool
            Mixing pools
        """
        assert len(data.hashes) == len(data.collisions), (
            "The data does not hold the hash bin of its collisions."
        )
        eligible = None
        if role is not None:
            assert 0 <= role < len(_ROLE_ATTRS), f"Particle role {role} out of range."
            masks = data.collision_masks.column(_ROLE_ATTRS[role])
            eligible = passes(masks, required)

        return cls(data.hashes.column("bin"), eligible)

    def __len__(self):
        return len(self._groups)

    def groups(self):
        """Lists the collisions of each mixing pool.

        Returns
        -------
        Dict[int, List[int]]
            Maps each valid hash bin onto its collisions, in production order
        """
        return {k: list(v) for k, v in self._groups.items()}

    def same_event(self):
        """Lists the collisions eligible for same-event pairing.

        Returns
        -------
        np.ndarray
            (M) Collision indexes, in production order
        """
        return np.flatnonzero(self.eligible)

    def partners(self, collision_id):
        """Lists the collisions which can be mixed with a given collision.

        Parameters
        ----------
        collision_id : int
            Index of the collision

        Returns
        -------
        List[int]
            Indexes of the other collisions of the same pool
        """
        if not self.eligible[collision_id]:
            return []

        group = self._groups.get(int(self.bins[collision_id]), [])

        return [i for i in group if i != collision_id]

    def mixed_pairs(self, depth=None):
        """Generates the mixed-event collision pairs.

        Each collision is paired with the `depth` collisions of its pool
        which directly precede it in production order, the closest first.

        Parameters
        ----------
        depth : int, optional
            Maximum number of partners per collision. If not specified, each
            collision is paired with all the preceding ones.

        Yields
        ------
        Tuple[int, int]
            (collision, earlier collision) index pair
        """
        assert depth is None or depth > 0, "The mixing depth must be positive."
        for key in sorted(self._groups):
            group = self._groups[key]
            for i, current in enumerate(group):
                start = 0 if depth is None else max(0, i - depth)
                for previous in reversed(group[start:i]):
                    yield current, previous


def share_children(data, first, second):
    """Checks whether two particles are related through their daughters.

    Two particles are related if one is a daughter of the other, or if they
    share a daughter. Such pairs must be excluded from the correlation.

    Parameters
    ----------
    data : DerivedData
        Committed data
    first : int
        Index of the first particle
    second : int
        Index of the second particle

    Returns
    -------
    bool
        `True` if the pair is auto-correlated
    """
    if first == second:
        return True

    first_children = data.children(first)
    second_children = data.children(second)
    if first in second_children or second in first_children:
        return True

    return bool(np.intersect1d(first_children, second_children).size)


def shares_prong(candidate, track):
    """Checks whether a heavy-flavour candidate was built from a track.

    Parameters
    ----------
    candidate : HFCandidate
        Heavy-flavour candidate
    track : Union[int, ParticleIndex]
        External track identifier, or the raw-track row of a particle

    Returns
    -------
    bool
        `True` if the track is one of the prongs of the candidate
    """
    if isinstance(track, ParticleIndex):
        track = track.track_id

    return candidate.has_prong(int(track))

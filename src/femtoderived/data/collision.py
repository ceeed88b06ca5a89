"""Module with data class objects which represent collision information.

A collision row is written once per event, after all the particles of the
event have been classified. Its companions (masks, downsampling flag and
mixing hash bin) are joined to it row by row.
"""

from dataclasses import dataclass

import numpy as np

from femtoderived.utils.bitmask import BitMask
from femtoderived.utils.globals import CUT_DTYPE, INVALID_BIN

from .base import DataBase

__all__ = ["Collision", "CollisionMask", "Downsample", "HashBin"]


@dataclass(eq=False)
class Collision(DataBase):
    """Collision information.

    Attributes
    ----------
    id : int
        Index of the collision, in production order
    pos_z : float
        Position of the primary vertex along the beam axis in cm
    mult_v0m : float
        V0M multiplicity (percentile)
    mult_ntr : int
        Number of charged tracks, as defined in the producer
    sphericity : float
        Sphericity of the event
    mag_field : float
        Magnetic field of the event in kG
    """

    id: int = -1
    pos_z: float = 0.0
    mult_v0m: float = 0.0
    mult_ntr: int = 0
    sphericity: float = 0.0
    mag_field: float = 0.0

    # Stored columns
    _dtypes = (
        ("id", np.int64),
        ("pos_z", np.float32),
        ("mult_v0m", np.float32),
        ("mult_ntr", np.int32),
        ("sphericity", np.float32),
        ("mag_field", np.float32),
    )

    # Index attributes
    _index_attrs = ("id",)


@dataclass(eq=False)
class CollisionMask(DataBase):
    """Mixing-pool eligibility of a collision for each particle role.

    Attributes
    ----------
    bitmask_track_one : int
        Selections satisfied by at least one particle for the first role
    bitmask_track_two : int
        Selections satisfied by at least one particle for the second role
    bitmask_track_three : int
        Selections satisfied by at least one particle for the third role
    """

    bitmask_track_one: int = 0
    bitmask_track_two: int = 0
    bitmask_track_three: int = 0

    # Stored columns
    _dtypes = (
        ("bitmask_track_one", CUT_DTYPE),
        ("bitmask_track_two", CUT_DTYPE),
        ("bitmask_track_three", CUT_DTYPE),
    )

    # Attributes which cannot be modified once they have been set
    _write_once_attrs = ("bitmask_track_one", "bitmask_track_two", "bitmask_track_three")

    def role(self, index):
        """Returns the mask of one particle role as a typed container.

        Parameters
        ----------
        index : int
            Role index (0, 1 or 2)

        Returns
        -------
        BitMask
            Selection container of the role
        """
        attrs = ("bitmask_track_one", "bitmask_track_two", "bitmask_track_three")
        assert 0 <= index < len(attrs), f"Particle role {index} out of range."

        return BitMask(getattr(self, attrs[index]))


@dataclass(eq=False)
class Downsample(DataBase):
    """Downsampling flag of a collision.

    Attributes
    ----------
    downsample : bool
        Whether the collision was kept by the downsampling
    """

    downsample: bool = False

    # Stored columns
    _dtypes = (("downsample", np.bool_),)


@dataclass(eq=False)
class HashBin(DataBase):
    """Event-mixing grouping key of a collision.

    Attributes
    ----------
    bin : int
        Hash bin of the collision. Collisions which share a bin can be mixed.
        The invalid bin (-1) is never mixed.
    """

    bin: int = INVALID_BIN

    # Stored columns
    _dtypes = (("bin", np.int64),)

    @property
    def is_valid(self):
        return self.bin != INVALID_BIN

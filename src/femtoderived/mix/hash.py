"""Assignment of the event-mixing hash bin of collisions.

The binning is external configuration: it must be versioned alongside the
data, as two productions binned differently cannot be mixed together. For a
fixed configuration, the bin of a collision only depends on its own scalars.
"""

from dataclasses import asdict, dataclass

import numpy as np

from femtoderived.data.collision import Collision, HashBin
from femtoderived.math.binning import assign_bins
from femtoderived.utils.enums import CollisionBinning, enum_factory
from femtoderived.utils.globals import INVALID_BIN

__all__ = ["BinDimension", "HashBinner"]


@dataclass
class BinDimension:
    """Discretization of one collision scalar.

    Bin indexes are limited to `binning.MAX_INDEX` in absolute value, and the
    folded code of all dimensions must stay within a signed 64-bit integer.
    Collisions beyond either bound, typically because of a width which is
    very small compared to the range of values, get the invalid bin.

    Attributes
    ----------
    column : str
        Name of the collision column (e.g. `pos_z`)
    width : float
        Bin width
    origin : float, default 0.
        Lower edge of bin 0
    low : float, default -inf
        Lowest accepted value
    high : float, default inf
        Upper (excluded) bound of the accepted values
    """

    column: str
    width: float
    origin: float = 0.0
    low: float = -np.inf
    high: float = np.inf

    def __post_init__(self):
        """Checks that the dimension is well defined."""
        if self.column not in Collision.column_dtypes() or self.column == "id":
            raise ValueError(
                f"Cannot bin collisions by `{self.column}`. Must be one of "
                f"{[k for k in Collision.column_dtypes() if k != 'id']}."
            )
        if not self.width > 0:
            raise ValueError(
                f"The bin width of `{self.column}` must be positive, "
                f"got {self.width}."
            )
        if not self.low < self.high:
            raise ValueError(
                f"The range of `{self.column}` is empty: "
                f"[{self.low}, {self.high})."
            )


class HashBinner:
    """Maps collisions onto their event-mixing hash bin.

    Two collisions share a bin if and only if they share the bin of every
    configured dimension. Collisions with a missing (`nan`) or out-of-range
    value are assigned the invalid bin and are never mixed.
    """

    # Preset dimensions of each collision binning method
    _presets = {
        CollisionBinning.MULT: ("mult_ntr",),
        CollisionBinning.MULT_PERCENTILE: ("mult_v0m",),
        CollisionBinning.MULT_MULT_PERCENTILE: ("mult_ntr", "mult_v0m"),
    }

    def __init__(self, dimensions):
        """Initialize the binner.

        Parameters
        ----------
        dimensions : List[Union[BinDimension, dict]]
            Ordered binning dimensions
        """
        self.dimensions = []
        for dim in dimensions:
            if isinstance(dim, dict):
                dim = BinDimension(**dim)
            self.dimensions.append(dim)

        assert len(self.dimensions), "Must provide at least one binning dimension."
        columns = [dim.column for dim in self.dimensions]
        assert len(set(columns)) == len(columns), (
            f"Each collision column can only be binned once, got {columns}."
        )

        self._widths = np.array([d.width for d in self.dimensions], dtype=np.float64)
        self._origins = np.array([d.origin for d in self.dimensions], dtype=np.float64)
        self._lows = np.array([d.low for d in self.dimensions], dtype=np.float64)
        self._highs = np.array([d.high for d in self.dimensions], dtype=np.float64)

    @classmethod
    def from_binning(
        cls,
        binning,
        pos_z_width=2.0,
        pos_z_range=(-10.0, 10.0),
        mult_width=10.0,
        mult_range=(0.0, np.inf),
        perc_width=10.0,
        perc_range=(0.0, 100.0),
    ):
        """Builds a binner from one of the collision binning methods.

        Every method bins the primary vertex position along the beam axis,
        and adds the multiplicity estimator(s) it is named after.

        Parameters
        ----------
        binning : Union[str, int, CollisionBinning]
            Collision binning method
        pos_z_width : float, default 2.
            Width of the vertex position bins in cm
        pos_z_range : Tuple[float, float], default (-10., 10.)
            Accepted vertex position range in cm
        mult_width : float, default 10.
            Width of the charged track multiplicity bins
        mult_range : Tuple[float, float], default (0., inf)
            Accepted charged track multiplicity range
        perc_width : float, default 10.
            Width of the multiplicity percentile bins
        perc_range : Tuple[float, float], default (0., 100.)
            Accepted multiplicity percentile range

        Returns
        -------
        HashBinner
            Collision binner
        """
        if isinstance(binning, str):
            binning = enum_factory("binning", binning)
        binning = CollisionBinning(binning)

        settings = {
            "pos_z": (pos_z_width, pos_z_range),
            "mult_ntr": (mult_width, mult_range),
            "mult_v0m": (perc_width, perc_range),
        }
        dimensions = []
        for column in ("pos_z", *cls._presets[binning]):
            width, (low, high) = settings[column]
            dimensions.append(
                BinDimension(column, width, origin=low, low=low, high=high)
            )

        return cls(dimensions)

    @property
    def columns(self):
        return [dim.column for dim in self.dimensions]

    def __call__(self, collision):
        """Assigns the hash bin of a single collision.

        Parameters
        ----------
        collision : Union[Collision, dict]
            Collision row or dictionary of collision scalars

        Returns
        -------
        int
            Hash bin of the collision
        """
        if isinstance(collision, dict):
            values = [collision[c] for c in self.columns]
        else:
            values = [getattr(collision, c) for c in self.columns]

        return int(self.assign_values(np.array([values], dtype=np.float64))[0])

    def row(self, collision):
        """Builds the hash bin row of a single collision.

        Parameters
        ----------
        collision : Union[Collision, dict]
            Collision row or dictionary of collision scalars

        Returns
        -------
        HashBin
            Hash bin row
        """
        return HashBin(bin=self(collision))

    def assign_values(self, values):
        """Assigns hash bins to a set of collision scalars.

        Parameters
        ----------
        values : np.ndarray
            (N, D) One column per binning dimension, in order

        Returns
        -------
        np.ndarray
            (N) Hash bin of each collision
        """
        values = np.asarray(values, dtype=np.float64).reshape(-1, len(self.dimensions))

        return assign_bins(values, self._widths, self._origins, self._lows, self._highs)

    def assign(self, collisions):
        """Assigns hash bins to all the collisions of a table.

        Parameters
        ----------
        collisions : Union[Table, Dict[str, np.ndarray]]
            Collision table or dictionary of collision columns

        Returns
        -------
        np.ndarray
            (N) Hash bin of each collision
        """
        if isinstance(collisions, dict):
            columns = [np.asarray(collisions[c]) for c in self.columns]
        else:
            columns = [collisions.column(c) for c in self.columns]

        if not len(columns[0]):
            return np.empty(0, dtype=np.int64)

        return self.assign_values(np.stack(columns, axis=1))

    def as_dict(self):
        """Returns the binning configuration, to be stored next to the data.

        Returns
        -------
        dict
            Ordered binning dimensions and the invalid bin value
        """
        return {
            "dimensions": [asdict(dim) for dim in self.dimensions],
            "invalid_bin": INVALID_BIN,
        }

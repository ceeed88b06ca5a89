"""Typed access to the bit-wise selection containers.

Selection results (`cut`, `pidcut` and the collision masks) are stored as
32-bit unsigned integers with one bit per independent criterion. Raw bit
arithmetic is confined to this module: production code builds masks with
:class:`BitMask` and :class:`SelectionBits`, analysis code filters with
:meth:`BitMask.matches` or the vectorized :func:`passes`.

The mapping from bit position to selection criterion is *not* enforced by
the data model. It is carried by a :class:`SelectionBits` table which must be
versioned alongside the production that used it.
"""

import numpy as np

from .globals import CUT_DTYPE, CUT_NBITS

__all__ = ["BitMask", "SelectionBits", "passes"]

# Largest value a selection container can hold
_MAX_MASK = (1 << CUT_NBITS) - 1


def _check_bit(bit):
    """Checks that a bit position fits in a selection container."""
    if not 0 <= int(bit) < CUT_NBITS:
        raise ValueError(
            f"Bit position {bit} out of range, must be in [0, {CUT_NBITS})."
        )

    return int(bit)


class BitMask:
    """Immutable 32-bit selection container.

    Attributes
    ----------
    value : int
        Unsigned integer value of the container
    """

    __slots__ = ("_value",)

    def __init__(self, value=0):
        """Initialize the container.

        Parameters
        ----------
        value : Union[int, BitMask], default 0
            Unsigned integer value of the container
        """
        value = int(value)
        if not 0 <= value <= _MAX_MASK:
            raise ValueError(
                f"Mask value {value} does not fit in {CUT_NBITS} unsigned bits."
            )

        self._value = value

    @classmethod
    def from_bits(cls, bits):
        """Builds a mask with the requested bits set.

        Parameters
        ----------
        bits : Iterable[int]
            Bit positions to set

        Returns
        -------
        BitMask
            Mask with exactly these bits set
        """
        value = 0
        for bit in bits:
            value |= 1 << _check_bit(bit)

        return cls(value)

    @property
    def value(self):
        return self._value

    def test(self, bit):
        """Checks whether a single bit is set.

        Parameters
        ----------
        bit : int
            Bit position

        Returns
        -------
        bool
            `True` if the bit is set
        """
        return bool(self._value >> _check_bit(bit) & 1)

    def matches(self, required):
        """Checks that all the required bits are set in this mask.

        Parameters
        ----------
        required : Union[int, BitMask]
            Mask of required bits

        Returns
        -------
        bool
            `True` if `(mask & required) == required`
        """
        required = int(required)

        return (self._value & required) == required

    def set(self, bit):
        """Returns a copy of this mask with one more bit set.

        Parameters
        ----------
        bit : int
            Bit position

        Returns
        -------
        BitMask
            New mask
        """
        return BitMask(self._value | 1 << _check_bit(bit))

    def bits(self):
        """Lists the positions of the bits which are set.

        Returns
        -------
        List[int]
            Ordered bit positions
        """
        return [b for b in range(CUT_NBITS) if self._value >> b & 1]

    def __int__(self):
        return self._value

    def __index__(self):
        return self._value

    def __or__(self, other):
        return BitMask(self._value | int(other))

    def __eq__(self, other):
        if isinstance(other, (BitMask, int, np.integer)):
            return self._value == int(other)

        return NotImplemented

    def __hash__(self):
        return hash(self._value)

    def __repr__(self):
        return f"BitMask(0b{self._value:b})"


def passes(masks, required):
    """Vectorized version of :meth:`BitMask.matches`.

    Parameters
    ----------
    masks : Union[int, np.ndarray]
        (N) Stored selection containers
    required : Union[int, BitMask]
        Mask of required bits

    Returns
    -------
    Union[bool, np.ndarray]
        (N) Whether each container holds all the required bits
    """
    masks = np.asarray(masks, dtype=CUT_DTYPE)
    required = CUT_DTYPE(BitMask(required).value)

    return (masks & required) == required


class SelectionBits:
    """Versioned mapping between named selection criteria and bit positions.

    Attributes
    ----------
    name : str
        Name of the container this table describes (e.g. `cut`)
    version : str
        Version of the bit assignment
    bits : Dict[str, int]
        Maps each criterion name onto its bit position
    """

    def __init__(self, bits, name="", version=None):
        """Initialize the table.

        Parameters
        ----------
        bits : Union[Dict[str, int], List[str]]
            Criterion to bit position mapping. If a list is provided, the
            criteria are assigned consecutive bits in order.
        name : str, optional
            Name of the container this table describes
        version : str, optional
            Version of the bit assignment
        """
        if not isinstance(bits, dict):
            bits = {criterion: i for i, criterion in enumerate(bits)}

        # Check that each criterion has its own valid bit
        positions = {}
        for criterion, bit in bits.items():
            bit = _check_bit(bit)
            if bit in positions:
                raise ValueError(
                    f"Criteria `{positions[bit]}` and `{criterion}` share "
                    f"bit {bit} in selection table `{name}`."
                )
            positions[bit] = criterion

        self.name = name
        self.version = None if version is None else str(version)
        self.bits = {k: int(v) for k, v in bits.items()}

    def __len__(self):
        return len(self.bits)

    def __contains__(self, criterion):
        return criterion in self.bits

    def bit(self, criterion):
        """Fetches the bit position of one criterion.

        Parameters
        ----------
        criterion : str
            Name of the selection criterion

        Returns
        -------
        int
            Bit position
        """
        if criterion not in self.bits:
            raise KeyError(
                f"Selection criterion `{criterion}` not defined in table "
                f"`{self.name}`. Known criteria: {list(self.bits.keys())}."
            )

        return self.bits[criterion]

    def mask(self, *criteria):
        """Builds the mask which requires all of the listed criteria.

        Parameters
        ----------
        *criteria : str
            Names of the selection criteria

        Returns
        -------
        BitMask
            Required mask
        """
        return BitMask.from_bits(self.bit(c) for c in criteria)

    def criteria(self, mask):
        """Decodes a mask into the names of the criteria it satisfies.

        Bits which are not assigned in this table are ignored.

        Parameters
        ----------
        mask : Union[int, BitMask]
            Stored selection container

        Returns
        -------
        List[str]
            Names of the satisfied criteria, in bit order
        """
        mask = BitMask(mask)
        return [
            c for c, b in sorted(self.bits.items(), key=lambda x: x[1])
            if mask.test(b)
        ]

    def as_dict(self):
        """Returns the table as a dictionary, e.g. to store it next to data.

        Returns
        -------
        dict
            Name, version and bit assignment of the table
        """
        return {"name": self.name, "version": self.version, "bits": dict(self.bits)}

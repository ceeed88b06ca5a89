"""Parent class of all the rows of the derived data model."""

from dataclasses import asdict, dataclass, fields

import numpy as np

from femtoderived.utils.globals import INVALID_INDEX

from .errors import WriteOnceError


@dataclass(eq=False)
class DataBase:
    """Base class of all row types.

    A row type is a dataclass whose fields are the stored columns of its
    table. The class-level registries below tell the table layer how each
    field is stored, validated and rewritten when batches are merged.
    """

    # Stored scalar columns, as (name, dtype)
    _dtypes = ()

    # Enumerated columns, as (name, ((value, label), ...))
    _enum_attrs = ()

    # Variable-length columns, as (name, dtype)
    _var_length_attrs = ()

    # Columns holding row indexes, shifted on merge
    _index_attrs = ()

    # Index columns which may be absent, stored as INVALID_INDEX
    _nullable_attrs = ()

    # Columns which cannot change once set
    _write_once_attrs = ()

    # Derived columns, as (name, kernel, (input columns)), never stored
    _dynamic_attrs = ()

    _locked = False

    def __post_init__(self):
        """Casts the variable-length columns to arrays of their dtype.

        Each row gets its own empty array when none is given, rather than a
        default shared by every instance.
        """
        for attr, dtype in self._var_length_attrs:
            value = getattr(self, attr)
            value = () if value is None else value
            setattr(self, attr, np.asarray(value, dtype=dtype))

    def __setattr__(self, attr, value):
        if self._locked:
            raise WriteOnceError(
                f"Cannot set `{attr}` of a committed `{self.__class__.__name__}` row."
            )

        # An absent value is not set yet
        if (
            attr in self._write_once_attrs
            and self.__dict__.get(attr) is not None
            and getattr(self, attr) != value
        ):
            raise WriteOnceError(
                f"`{attr}` of `{self.__class__.__name__}` is write-once "
                "and has already been set."
            )

        super().__setattr__(attr, value)

    def __eq__(self, other):
        """Compares two rows column by column, arrays element-wise."""
        if type(self) is not type(other):
            return False

        for field in fields(self):
            mine, theirs = getattr(self, field.name), getattr(other, field.name)
            if isinstance(mine, np.ndarray):
                if not np.array_equal(mine, theirs):
                    return False
            elif mine != theirs:
                return False

        return True

    def lock(self):
        """Prevents any further modification of the row."""
        object.__setattr__(self, "_locked", True)

    @property
    def locked(self):
        return self._locked

    def shift_indexes(self, shifts):
        """Offsets the index columns of the row in place.

        Absent (`None`) and invalid (negative) indexes are left untouched so
        that they remain invalid. Arrays are shifted element-wise.

        Parameters
        ----------
        shifts : Union[int, Dict[str, int]]
            Offset applied to every index column, or one offset per column.
            Columns missing from the dictionary are not shifted.
        """
        for attr in self._index_attrs:
            if isinstance(shifts, dict):
                if attr not in shifts:
                    continue
                shift = shifts[attr]
            else:
                shift = shifts

            value = getattr(self, attr)
            if value is None or (np.isscalar(value) and value <= INVALID_INDEX):
                continue

            # Merging rewrites write-once indexes, which goes around the check
            object.__setattr__(self, attr, value + shift)

    def as_dict(self):
        """Returns the columns of the row as a dictionary."""
        return asdict(self)

    def scalar_dict(self, attrs=None, lengths=None):
        """Flattens the row into one scalar per column.

        Absent nullable indexes become `INVALID_INDEX`. A variable-length
        column named `attr` is expanded to `attr_0`, `attr_1`, ... if its
        length is given in `lengths`, padded with `INVALID_INDEX`. It is
        dropped otherwise, unless it was explicitly requested.

        Parameters
        ----------
        attrs : List[str], optional
            Columns to include. All columns are included by default.
        lengths : Dict[str, int], optional
            Number of entries of each variable-length column to keep

        Returns
        -------
        Dict[str, object]
            Flat (column, scalar) pairs

        Raises
        ------
        AttributeError
            If a requested column does not exist
        ValueError
            If a column cannot be flattened
        """
        values = self.as_dict()
        if attrs is not None:
            unknown = [attr for attr in attrs if attr not in values]
            if unknown:
                raise AttributeError(
                    f"`{self.__class__.__name__}` has no column(s) {unknown}."
                )
            values = {attr: values[attr] for attr in attrs}

        lengths = lengths or {}
        var_length = dict(self._var_length_attrs)
        flat = {}
        for attr, value in values.items():
            if np.isscalar(value):
                flat[attr] = value

            elif value is None and attr in self._nullable_attrs:
                flat[attr] = INVALID_INDEX

            elif attr in var_length:
                if attr not in lengths:
                    if attrs is not None:
                        raise ValueError(
                            f"`{attr}` is variable-length: provide its length "
                            "to flatten it."
                        )
                    continue
                padded = np.full(lengths[attr], INVALID_INDEX, dtype=var_length[attr])
                count = min(len(value), lengths[attr])
                padded[:count] = value[:count]
                for i, entry in enumerate(padded):
                    flat[f"{attr}_{i}"] = entry

            else:
                raise ValueError(
                    f"`{attr}` of `{self.__class__.__name__}` is not a scalar."
                )

        return flat

    @classmethod
    def column_dtypes(cls):
        """Maps each stored scalar column onto its numpy type."""
        return dict(cls._dtypes)

    @property
    def dynamic_attrs(self):
        """Derived columns of the row type.

        Returns
        -------
        Dict[str, Tuple[callable, Tuple[str]]]
            Kernel computing each derived column and the stored columns it
            takes as inputs
        """
        return {k: (kernel, inputs) for k, kernel, inputs in self._dynamic_attrs}

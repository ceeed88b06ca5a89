"""Module with the columnar tables which hold committed rows.

A table is the arena of one row type: each stored attribute is a numpy
column, variable-length attributes are stored as a flat value array with
(N+1) offsets, and rows are addressed by their position. Committed tables
are read-only; reading them needs no locking and performs no validation.
"""

import numpy as np

from femtoderived.utils.bitmask import passes
from femtoderived.utils.globals import INVALID_INDEX

from .errors import ColumnValueError, WriteOnceError

__all__ = ["Table", "ResultsTable"]


def _read_only(array):
    """Flags an array as non-writeable and returns it."""
    array.setflags(write=False)
    return array


def to_column(row_class, attr, values, dtype):
    """Casts the values of one attribute to the fixed-width type of its column.

    Integer values are range-checked against the column type rather than
    wrapped around.

    Parameters
    ----------
    row_class : type
        Row data class, for the error message
    attr : str
        Column name
    values : Union[list, np.ndarray]
        (N) Values of the column
    dtype : type
        Numpy type of the column

    Returns
    -------
    np.ndarray
        (N) Column

    Raises
    ------
    ColumnValueError
        If a value cannot be represented in the column type
    """
    dtype = np.dtype(dtype)
    if isinstance(values, np.ndarray) and values.dtype == dtype:
        return values.copy()

    try:
        raw = np.asarray(values)
        if dtype.kind in "iu" and raw.size and raw.dtype.kind in "iuf":
            info = np.iinfo(dtype)
            bad = np.flatnonzero(
                ~np.isfinite(raw) | (raw < info.min) | (raw > info.max)
            )
            if len(bad):
                raise ColumnValueError(
                    f"Row {bad[0]} of `{row_class.__name__}` has `{attr}` = "
                    f"{raw[bad[0]]}, which does not fit in a {dtype.name} column "
                    f"[{info.min}, {info.max}]."
                )

        return np.array(values, dtype=dtype)

    except (TypeError, ValueError, OverflowError) as err:
        if isinstance(err, ColumnValueError):
            raise
        raise ColumnValueError(
            f"Cannot store the `{attr}` values of `{row_class.__name__}` in a "
            f"{dtype.name} column: {err}"
        ) from err


class Table:
    """Read-only columnar table of rows of a single type.

    Attributes
    ----------
    row_class : type
        Row data class stored in the table
    """

    def __init__(self, row_class, columns, var_columns=None):
        """Initialize the table from its columns.

        Parameters
        ----------
        row_class : type
            Row data class stored in the table
        columns : Dict[str, np.ndarray]
            One array per stored scalar column of the row class
        var_columns : Dict[str, Tuple[np.ndarray, np.ndarray]], optional
            (values, offsets) pair per variable-length column
        """
        self.row_class = row_class

        # Store the scalar columns, check that they all have the same length
        self._columns = {}
        length = None
        for attr, dtype in row_class._dtypes:
            column = to_column(row_class, attr, columns[attr], dtype)
            if length is not None and len(column) != length:
                raise ValueError(
                    f"Column `{attr}` of `{row_class.__name__}` has "
                    f"{len(column)} rows, expected {length}."
                )
            length = len(column)
            self._columns[attr] = _read_only(column)

        # Store the variable-length columns
        self._var_columns = {}
        var_columns = var_columns or {}
        for attr, dtype in row_class._var_length_attrs:
            values, offsets = var_columns[attr]
            values = to_column(row_class, attr, values, dtype)
            offsets = np.array(offsets, dtype=np.int64)
            assert len(offsets) == length + 1 and offsets[-1] == len(values), (
                f"The offsets of `{attr}` do not match the table length."
            )
            self._var_columns[attr] = (_read_only(values), _read_only(offsets))

        self._length = length or 0

    @classmethod
    def from_rows(cls, row_class, rows):
        """Builds a table from a list of row objects.

        Parameters
        ----------
        row_class : type
            Row data class stored in the table
        rows : List[DataBase]
            Row objects, in table order

        Returns
        -------
        Table
            Columnar table
        """
        # Fill the scalar columns, nullable attributes are stored as invalid
        columns = {}
        for attr, _ in row_class._dtypes:
            values = [getattr(row, attr) for row in rows]
            if attr in row_class._nullable_attrs:
                values = [INVALID_INDEX if v is None else v for v in values]
            columns[attr] = values

        # Flatten the variable-length columns
        var_columns = {}
        for attr, dtype in row_class._var_length_attrs:
            arrays = [np.asarray(getattr(row, attr), dtype=dtype) for row in rows]
            counts = np.array([len(a) for a in arrays], dtype=np.int64)
            offsets = np.zeros(len(rows) + 1, dtype=np.int64)
            offsets[1:] = np.cumsum(counts)
            values = np.concatenate(arrays) if len(arrays) else np.empty(0, dtype)
            var_columns[attr] = (values, offsets)

        return cls(row_class, columns, var_columns)

    @classmethod
    def empty(cls, row_class):
        """Builds an empty table of a given row type.

        Parameters
        ----------
        row_class : type
            Row data class stored in the table

        Returns
        -------
        Table
            Table with no rows
        """
        return cls.from_rows(row_class, [])

    def __len__(self):
        return self._length

    def __getitem__(self, index):
        """Reads one row back as a locked row object.

        Parameters
        ----------
        index : int
            Row position

        Returns
        -------
        DataBase
            Row object
        """
        index = int(index)
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError(
                f"Index {index} out of bound for a `{self.row_class.__name__}` "
                f"table of size {self._length}."
            )

        kwargs = {}
        for attr, column in self._columns.items():
            value = column[index].item()
            if attr in self.row_class._nullable_attrs and value == INVALID_INDEX:
                value = None
            kwargs[attr] = value

        for attr, (values, offsets) in self._var_columns.items():
            kwargs[attr] = values[offsets[index] : offsets[index + 1]].copy()

        row = self.row_class(**kwargs)
        row.lock()

        return row

    def __iter__(self):
        for i in range(self._length):
            yield self[i]

    @property
    def columns(self):
        """List of stored column names.

        Returns
        -------
        List[str]
            Scalar and variable-length column names
        """
        return list(self._columns.keys()) + list(self._var_columns.keys())

    def column(self, attr):
        """Fetches one stored column.

        Parameters
        ----------
        attr : str
            Column name

        Returns
        -------
        Union[np.ndarray, List[np.ndarray]]
            (N) Read-only column or, for variable-length attributes, the list
            of per-row arrays
        """
        if attr in self._columns:
            return self._columns[attr]

        if attr in self._var_columns:
            values, offsets = self._var_columns[attr]
            return np.split(values, offsets[1:-1])

        raise KeyError(
            f"Column `{attr}` not stored in `{self.row_class.__name__}` table. "
            f"Known columns: {self.columns}."
        )

    def var_column(self, attr):
        """Fetches the flat representation of a variable-length column.

        Parameters
        ----------
        attr : str
            Column name

        Returns
        -------
        np.ndarray
            (M) Concatenated values of all rows
        np.ndarray
            (N+1) Offsets of each row in the value array
        """
        return self._var_columns[attr]

    def dynamic(self, attr):
        """Computes a dynamic column for all rows at once.

        The values are derived from the stored inputs on every call and are
        never cached.

        Parameters
        ----------
        attr : str
            Dynamic column name

        Returns
        -------
        np.ndarray
            (N) Derived values
        """
        dynamic_attrs = {k: (f, i) for k, f, i in self.row_class._dynamic_attrs}
        if attr not in dynamic_attrs:
            raise KeyError(
                f"`{attr}` is not a dynamic column of `{self.row_class.__name__}`. "
                f"Known dynamic columns: {list(dynamic_attrs.keys())}."
            )

        kernel, inputs = dynamic_attrs[attr]
        args = [self._columns[i].astype(np.float64) for i in inputs]

        return kernel(*args)

    def select(self, attr, required):
        """Finds the rows whose bit-wise container holds all required bits.

        Parameters
        ----------
        attr : str
            Name of the bit-wise container column
        required : Union[int, BitMask]
            Required bits

        Returns
        -------
        np.ndarray
            (M) Positions of the selected rows
        """
        return np.flatnonzero(passes(self._columns[attr], required))

    def group_by(self, attr):
        """Groups the row positions by the value of one column.

        Parameters
        ----------
        attr : str
            Column name (e.g. `collision_id`)

        Returns
        -------
        Dict[int, np.ndarray]
            Maps each column value onto the ordered positions of its rows
        """
        column = self._columns[attr]
        order = np.argsort(column, kind="stable")
        values, starts = np.unique(column[order], return_index=True)
        groups = np.split(order, starts[1:])

        return {v.item(): g for v, g in zip(values, groups)}

    def as_dict(self):
        """Returns copies of all the stored columns.

        Returns
        -------
        Dict[str, np.ndarray]
            Scalar columns, and (values, offsets) for variable-length ones
        """
        columns = {k: v.copy() for k, v in self._columns.items()}
        for k, (values, offsets) in self._var_columns.items():
            columns[k] = (values.copy(), offsets.copy())

        return columns


class ResultsTable:
    """Append-only table of flat result rows.

    Rows can only be appended: there is no update or delete operation. Each
    row must consist of scalar values only.
    """

    def __init__(self, row_class):
        """Initialize an empty results table.

        Parameters
        ----------
        row_class : type
            Row data class stored in the table
        """
        assert not row_class._var_length_attrs, (
            "Result rows must only hold scalar values."
        )
        self.row_class = row_class
        self._buffers = {attr: [] for attr, _ in row_class._dtypes}
        self._length = 0
        self._closed = False

    def __len__(self):
        return self._length

    def append(self, row=None, **kwargs):
        """Appends one row to the table.

        Parameters
        ----------
        row : DataBase, optional
            Row object. If not provided, it is built from the keyword arguments
        **kwargs : dict, optional
            Row attributes

        Raises
        ------
        TypeError
            If a value is not a scalar
        ColumnValueError
            If a value does not fit in its column
        """
        if self._closed:
            raise WriteOnceError("Cannot append to a closed results table.")

        if row is None:
            row = self.row_class(**kwargs)
        else:
            assert isinstance(row, self.row_class), (
                f"Expected a `{self.row_class.__name__}` row, got "
                f"`{row.__class__.__name__}`."
            )

        # Every value is cast before any buffer is touched
        values = {}
        for attr, dtype in self.row_class._dtypes:
            value = getattr(row, attr)
            if not np.isscalar(value):
                raise TypeError(
                    f"Result attribute `{attr}` must be a scalar, got "
                    f"`{type(value).__name__}`."
                )
            values[attr] = to_column(self.row_class, attr, [value], dtype)[0]

        for attr, value in values.items():
            self._buffers[attr].append(value)
        self._length += 1

    def extend(self, rows):
        """Appends several rows to the table.

        Parameters
        ----------
        rows : Iterable[DataBase]
            Row objects
        """
        for row in rows:
            self.append(row)

    def close(self):
        """Prevents any further append."""
        self._closed = True

    def column(self, attr):
        """Fetches a read-only copy of one column.

        Parameters
        ----------
        attr : str
            Column name

        Returns
        -------
        np.ndarray
            (N) Column values
        """
        dtype = dict(self.row_class._dtypes)[attr]
        return _read_only(np.array(self._buffers[attr], dtype=dtype))

    def to_table(self):
        """Snapshots the rows appended so far into a read-only table.

        Returns
        -------
        Table
            Columnar table
        """
        return Table(self.row_class, self._buffers)

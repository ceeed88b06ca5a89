"""Consistency checks of a set of columnar tables.

These checks are run once, when a production batch is committed, and on
demand on committed data (see :meth:`DerivedData.check_quality`). Each check
raises the appropriate :class:`CommitError` subclass on the first violation.
"""

import numpy as np

from femtoderived.math.graph import find_cycle
from femtoderived.utils.globals import INVALID_INDEX, MAX_CHILDREN

from .errors import (
    ChildrenCycleError,
    CommitError,
    CompanionLengthError,
    DanglingReferenceError,
    InvalidEnumError,
    LabelRangeError,
)

__all__ = [
    "check_enums",
    "check_row_enums",
    "check_dense_ids",
    "check_references",
    "check_labels",
    "check_companion",
    "check_children",
]


def _check_enum_values(row_class, attr, labels, values):
    """Checks that the values of one enumerated attribute are known tags."""
    known = [k for k, _ in labels]
    bad = np.flatnonzero(~np.isin(values, known))
    if len(bad):
        raise InvalidEnumError(
            f"Row {bad[0]} of `{row_class.__name__}` has `{attr}` = "
            f"{values[bad[0]]}, which is not one of {dict(labels)}."
        )


def check_enums(table):
    """Checks that all enumerated columns hold a known tag.

    Parameters
    ----------
    table : Table
        Table to check
    """
    for attr, labels in table.row_class._enum_attrs:
        _check_enum_values(table.row_class, attr, labels, table.column(attr))


def check_row_enums(row_class, rows):
    """Checks the enumerated attributes of rows before they are stored.

    A tag outside of the closed enumeration may not fit in its fixed-width
    column, it must be rejected before the column is built.

    Parameters
    ----------
    row_class : type
        Row data class
    rows : List[DataBase]
        Rows to check
    """
    for attr, labels in row_class._enum_attrs:
        values = np.array([int(getattr(row, attr)) for row in rows], dtype=np.int64)
        _check_enum_values(row_class, attr, labels, values)


def check_dense_ids(table, attr="id"):
    """Checks that the identifiers of a table match the row positions.

    Parameters
    ----------
    table : Table
        Table to check
    attr : str, default 'id'
        Identifier column
    """
    column = table.column(attr)
    bad = np.flatnonzero(column != np.arange(len(column)))
    if len(bad):
        raise CommitError(
            f"Row {bad[0]} of `{table.row_class.__name__}` has `{attr}` = "
            f"{column[bad[0]]}, identifiers must match the row positions."
        )


def check_references(table, attr, num_targets, target, nullable=False,
                     error=DanglingReferenceError):
    """Checks that an index column points at existing rows.

    Parameters
    ----------
    table : Table
        Table to check
    attr : str
        Index column
    num_targets : int
        Number of rows in the target table
    target : str
        Name of the target table, for the error message
    nullable : bool, default False
        If `True`, the invalid index is accepted
    error : type, default DanglingReferenceError
        Exception raised on the first violation
    """
    column = table.column(attr)
    valid = (column >= 0) & (column < num_targets)
    if nullable:
        valid |= column == INVALID_INDEX

    bad = np.flatnonzero(~valid)
    if len(bad):
        raise error(
            f"Row {bad[0]} of `{table.row_class.__name__}` has `{attr}` = "
            f"{column[bad[0]]}, but the `{target}` table only has "
            f"{num_targets} rows."
        )


def check_labels(labels, num_mc_particles):
    """Checks that all the truth labels point inside the truth table.

    Parameters
    ----------
    labels : Table
        Label table
    num_mc_particles : int
        Number of rows in the truth table
    """
    check_references(
        labels, "mc_particle_id", num_mc_particles, "mc_particles",
        nullable=True, error=LabelRangeError
    )


def check_companion(owner, companion, name):
    """Checks that a 1:1 companion table matches its owner.

    A companion table is either empty (not produced) or has exactly one row
    per row of its owner.

    Parameters
    ----------
    owner : Table
        Owner table
    companion : Table
        Companion table
    name : str
        Name of the companion table, for the error message
    """
    if len(companion) and len(companion) != len(owner):
        raise CompanionLengthError(
            f"The `{name}` table has {len(companion)} rows, but its owner "
            f"`{owner.row_class.__name__}` table has {len(owner)}."
        )


def check_children(particles):
    """Checks the self-referential daughter links of the particle table.

    Each particle references at most two daughters of the same collision,
    and only daughters which were written before it. The relation can
    therefore have neither a self-reference nor a cycle.

    Parameters
    ----------
    particles : Table
        Particle table
    """
    values, offsets = particles.var_column("children_ids")
    num_particles = len(particles)
    counts = np.diff(offsets)
    parents = np.repeat(np.arange(num_particles), counts)

    # Check the number of children
    bad = np.flatnonzero(counts > MAX_CHILDREN)
    if len(bad):
        raise CommitError(
            f"Particle {bad[0]} has {counts[bad[0]]} children, at most "
            f"{MAX_CHILDREN} are allowed."
        )

    # Check that the children exist
    bad = np.flatnonzero((values < 0) | (values >= num_particles))
    if len(bad):
        raise DanglingReferenceError(
            f"Particle {parents[bad[0]]} references child {values[bad[0]]}, "
            f"but there are only {num_particles} particles."
        )

    # Check for self-references and cycles
    bad = np.flatnonzero(values == parents)
    if len(bad):
        raise ChildrenCycleError([int(parents[bad[0]])] * 2)

    cycle = find_cycle(offsets, values)
    if len(cycle):
        raise ChildrenCycleError([int(i) for i in cycle])

    # Check that the children were written before their parent
    bad = np.flatnonzero(values > parents)
    if len(bad):
        raise DanglingReferenceError(
            f"Particle {parents[bad[0]]} references child {values[bad[0]]}, "
            "which was not written before it."
        )

    # Check that the children belong to the same collision
    collision_ids = particles.column("collision_id")
    bad = np.flatnonzero(collision_ids[values] != collision_ids[parents])
    if len(bad):
        raise DanglingReferenceError(
            f"Particle {parents[bad[0]]} of collision "
            f"{collision_ids[parents[bad[0]]]} references child "
            f"{values[bad[0]]} of collision {collision_ids[values[bad[0]]]}."
        )

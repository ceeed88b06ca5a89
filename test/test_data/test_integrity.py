"""Tests for the consistency checks run on commit."""

import numpy as np
import pytest

from femtoderived.data import (
    ChildrenCycleError,
    Collision,
    CollisionMask,
    CommitError,
    CompanionLengthError,
    DanglingReferenceError,
    InvalidEnumError,
    Label,
    LabelRangeError,
    Particle,
    Table,
)
from femtoderived.data.integrity import (
    check_children,
    check_companion,
    check_dense_ids,
    check_enums,
    check_labels,
    check_references,
    check_row_enums,
)


def particle_table(children, collision_ids=None):
    """Builds a particle table from the children of each particle."""
    collision_ids = collision_ids or [0] * len(children)
    rows = [
        Particle(id=i, collision_id=c, children_ids=ch)
        for i, (ch, c) in enumerate(zip(children, collision_ids))
    ]

    return Table.from_rows(Particle, rows)


class TestChildren:
    """Test the checks of the daughter relation."""

    def test_valid(self):
        """Daughters written before their parent are accepted."""
        check_children(particle_table([[], [], [0, 1], [], [2, 3]]))

    def test_self_reference(self):
        """A particle cannot be its own daughter."""
        with pytest.raises(ChildrenCycleError) as exc:
            check_children(particle_table([[], [1]]))
        assert exc.value.cycle_path == [1, 1]

    def test_cycle(self):
        """Test that a cycle is reported with its path."""
        with pytest.raises(ChildrenCycleError) as exc:
            check_children(particle_table([[1], [2], [0]]))
        path = exc.value.cycle_path
        assert path[0] == path[-1]
        assert sorted(path[:-1]) == [0, 1, 2]

    def test_dangling(self):
        """Daughters must exist."""
        with pytest.raises(DanglingReferenceError):
            check_children(particle_table([[], [5]]))
        with pytest.raises(DanglingReferenceError):
            check_children(particle_table([[-1]]))

    def test_forward_reference(self):
        """Daughters must be written before their parent."""
        with pytest.raises(DanglingReferenceError, match="not written before"):
            check_children(particle_table([[1], []]))

    def test_too_many_children(self):
        """A particle has at most two daughters."""
        with pytest.raises(CommitError):
            check_children(particle_table([[], [], [], [0, 1, 2]]))

    def test_other_collision(self):
        """Daughters must belong to the collision of their parent."""
        with pytest.raises(DanglingReferenceError, match="collision"):
            check_children(particle_table([[], [0]], [0, 1]))


class TestReferences:
    """Test the checks of the index columns."""

    def test_dense_ids(self):
        """Identifiers must match the row positions."""
        check_dense_ids(Table.from_rows(Collision, [Collision(id=0), Collision(id=1)]))
        with pytest.raises(CommitError):
            check_dense_ids(Table.from_rows(Collision, [Collision(id=1)]))

    def test_collision_references(self):
        """Test the weak references to the collision table."""
        table = particle_table([[], []], [0, 1])
        check_references(table, "collision_id", 2, "collisions")
        with pytest.raises(DanglingReferenceError):
            check_references(table, "collision_id", 1, "collisions")

    def test_labels(self):
        """Labels are either absent or point inside the truth table."""
        labels = Table.from_rows(Label, [Label(mc_particle_id=0), Label()])
        check_labels(labels, 1)
        with pytest.raises(LabelRangeError):
            check_labels(labels, 0)

    def test_companion(self):
        """Companions are either empty or as long as their owner."""
        owner = Table.from_rows(Collision, [Collision(id=0), Collision(id=1)])
        check_companion(owner, Table.empty(CollisionMask), "collision_masks")
        check_companion(
            owner, Table.from_rows(CollisionMask, [CollisionMask()] * 2), "masks"
        )
        with pytest.raises(CompanionLengthError):
            check_companion(
                owner, Table.from_rows(CollisionMask, [CollisionMask()]), "masks"
            )


class TestEnums:
    """Test the checks of the enumerated columns."""

    def test_valid(self):
        """Known tags are accepted."""
        check_enums(particle_table([[], []]))

    def test_unknown_tag(self):
        """Tags outside of the closed enumeration are rejected."""
        rows = [Particle(part_type=0), Particle(part_type=17)]
        with pytest.raises(InvalidEnumError):
            check_row_enums(Particle, rows)

    def test_overflowing_tag(self):
        """Tags which do not fit in their column are rejected before storage."""
        with pytest.raises(InvalidEnumError):
            check_row_enums(Particle, [Particle(part_type=300)])

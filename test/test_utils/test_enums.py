"""Tests for the enumerated types and their display names."""

import pytest

from femtoderived.utils.enums import (
    CollisionBinning,
    ParticleOriginMCTruth,
    ParticleType,
    enum_factory,
)
from femtoderived.utils.globals import (
    ORIGIN_LABELS,
    PART_TYPE_LABELS,
    TEMP_FIT_VAR_LABELS,
)


class TestEnums:
    """Test the closed enumerations."""

    def test_particle_types(self):
        """Test the values of the particle types."""
        assert [int(t) for t in ParticleType] == [0, 1, 2, 3, 4, 5]
        assert ParticleType.CHARM_HADRON == 5

    def test_every_tag_has_a_name(self):
        """Each enumerated value has a display name."""
        assert set(PART_TYPE_LABELS) == {int(t) for t in ParticleType}
        assert set(ORIGIN_LABELS) == {int(o) for o in ParticleOriginMCTruth}
        assert ORIGIN_LABELS[ParticleOriginMCTruth.WRONG_COLLISION] == "_WrongCollision"
        assert ORIGIN_LABELS[ParticleOriginMCTruth.ELSE] == "_Else"

    def test_template_fit_variable(self):
        """Tracks and daughters are fitted in DCAxy, V0s and cascades in CPA."""
        assert TEMP_FIT_VAR_LABELS[ParticleType.TRACK] == "/hDCAxy"
        assert TEMP_FIT_VAR_LABELS[ParticleType.V0] == "/hCPA"
        assert TEMP_FIT_VAR_LABELS[ParticleType.CASCADE] == "/hCPA"
        assert TEMP_FIT_VAR_LABELS[ParticleType.CASCADE_BACHELOR] == "/hDCAxy"


class TestEnumFactory:
    """Test the parsing of enumerated names from configuration."""

    def test_single_name(self):
        """Test parsing a single name, case insensitive."""
        assert enum_factory("particle", "v0") == ParticleType.V0
        assert enum_factory("binning", "MULT_PERCENTILE") == CollisionBinning.MULT_PERCENTILE

    def test_list_of_names(self):
        """Test parsing a list of names."""
        assert enum_factory("origin", ["primary", "fake"]) == [0, 4]

    def test_unknown_name(self):
        """An unknown name is an error."""
        with pytest.raises(ValueError):
            enum_factory("particle", "gluon")

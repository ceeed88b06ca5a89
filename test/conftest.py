"""Sets up fixtures general to the entire test suite of this package.

This file is read during the collection phase of pytest when running anything
inside this directory.
"""

import pytest

from femtoderived.config import ProductionConfig
from femtoderived.mix import BinDimension, HashBinner
from femtoderived.produce import ProductionBatch
from femtoderived.utils.bitmask import SelectionBits
from femtoderived.utils.enums import ParticleOriginMCTruth, ParticleType


@pytest.fixture(name="config")
def fixture_config():
    """Production configuration binned in vertex position and multiplicity."""
    binner = HashBinner(
        [
            BinDimension("pos_z", 5.0, origin=-10.0, low=-10.0, high=10.0),
            BinDimension("mult_ntr", 5.0),
        ]
    )
    selections = {
        "cut": SelectionBits(["pt_min", "eta_max", "dca_xy", "n_cls_tpc"], "cut", "240719"),
        "pidcut": SelectionBits({"tpc_proton": 0, "tof_proton": 1}, "pidcut"),
        "track_one": SelectionBits(["proton"], "track_one"),
    }

    return ProductionConfig(selections, binner, "240719")


def fill_event(writer, num_tracks=2, with_v0=True, mc=False):
    """Writes a small event: a few tracks, and a V0 built from two daughters.

    Parameters
    ----------
    writer : EventWriter
        Writer of the event
    num_tracks : int, default 2
        Number of primary tracks
    with_v0 : bool, default True
        Whether to write a V0 and its two daughters
    mc : bool, default False
        Whether to write truth particles and their labels

    Returns
    -------
    List[int]
        Batch indexes of the particles written
    """
    ids = []
    for i in range(num_tracks):
        label = None
        if mc:
            label = writer.add_mc_particle(2212, 1.0 + i, 0.1, 0.2, ext=2212)
        ids.append(
            writer.add_particle(
                1.0 + i, 0.1, 0.2, cut=0b0111, pidcut=0b01, label=label,
                ext_label=label, track_id=100 + i
            )
        )

    if with_v0:
        pos = writer.add_particle(
            0.8, 0.3, 1.0, part_type=ParticleType.V0_CHILD, cut=0b0001,
            track_id=200
        )
        neg = writer.add_particle(
            0.6, -0.2, 1.2, part_type=ParticleType.V0_CHILD, cut=0b0001,
            track_id=201
        )
        label = None
        if mc:
            label = writer.add_mc_particle(
                3122, 1.3, 0.05, 1.1,
                part_origin_mc_truth=ParticleOriginMCTruth.SECONDARY, ext=3312
            )
        v0 = writer.add_particle(
            1.35, 0.05, 1.1, part_type=ParticleType.V0, cut=0b0011,
            children_ids=[pos, neg], m_lambda=1.115, m_anti_lambda=1.2,
            m_kaon=0.6, label=label, ext_label=label, track_id=300
        )
        ids.extend([pos, neg, v0])

    return ids


@pytest.fixture(name="batch")
def fixture_batch(config):
    """Data batch with three events."""
    batch = ProductionBatch(config)
    for pos_z, mult in ((1.0, 10), (2.0, 12), (-7.0, 999)):
        with batch.event(pos_z=pos_z, mult_ntr=mult, mult_v0m=30.0) as writer:
            fill_event(writer)
            writer.set_masks(track_one=0b1)

    return batch


@pytest.fixture(name="data")
def fixture_data(batch):
    """Committed data of the default batch."""
    return batch.commit()


@pytest.fixture(name="fill_event")
def fixture_fill_event():
    """Function which writes a small event through an event writer."""
    return fill_event

"""Merge of independently produced batches.

Each worker writes its own :class:`ProductionBatch`, with indexes local to
that batch. The merge is a single-threaded pass which concatenates the
batches in order and rewrites every index attribute to its final, global
value. Indexes which do not point to anything (absent labels) are left as is.
"""

from concurrent.futures import ThreadPoolExecutor
from copy import deepcopy

from femtoderived.data.store import DerivedData
from femtoderived.utils.logger import logger

from .batch import ProductionBatch

__all__ = ["merge_batches", "produce_concurrently"]

# Index attributes of each table, mapped onto the table they point into
_INDEX_TARGETS = {
    "collisions": {"id": "collisions"},
    "particles": {
        "id": "particles",
        "collision_id": "collisions",
        "children_ids": "particles",
    },
    "labels": {"mc_particle_id": "mc_particles"},
    "ext_labels": {"ext_mc_particle_id": "ext_mc_particles"},
    "mc_particles": {"id": "mc_particles"},
    "hf_candidates": {
        "id": "hf_candidates",
        "collision_id": "collisions",
        "mc_id": "hf_candidates_mc",
    },
    "hf_candidates_mc_gen": {"collision_id": "collisions"},
}


def merge_batches(batches):
    """Merges production batches into a single batch.

    The source batches are left untouched. The merged batch can be committed
    like any other batch.

    Parameters
    ----------
    batches : List[ProductionBatch]
        Batches to merge, in order

    Returns
    -------
    ProductionBatch
        Merged batch
    """
    assert len(batches), "Must provide at least one batch to merge."
    first = batches[0]
    for batch in batches:
        assert batch._writer is None, "Cannot merge a batch with an open event."
        assert not batch.closed, "Cannot merge a committed or discarded batch."
        assert batch.is_mc == first.is_mc, (
            "Cannot merge data batches with Monte-Carlo batches."
        )
        if batch.config is not first.config:
            first_conv = first.config.conventions() if first.config else {}
            conv = batch.config.conventions() if batch.config else {}
            assert conv == first_conv, (
                "Cannot merge batches produced with different conventions."
            )

    merged = ProductionBatch(config=first.config, is_mc=first.is_mc)
    offsets = {
        name: 0
        for name in (
            "collisions", "particles", "mc_particles", "ext_mc_particles",
            "hf_candidates", "hf_candidates_mc",
        )
    }
    for batch in batches:
        rows = {}
        for name in DerivedData.table_names():
            targets = _INDEX_TARGETS.get(name, {})
            shifts = {attr: offsets[target] for attr, target in targets.items()}
            rows[name] = []
            for row in batch.rows(name):
                row = deepcopy(row)
                if shifts:
                    row.shift_indexes(shifts)
                rows[name].append(row)

        merged._extend(rows)
        for name in offsets:
            offsets[name] += batch.num_rows(name)

    logger.info(
        "Merged %d production batches into %d collisions.",
        len(batches), offsets["collisions"]
    )

    return merged


def produce_concurrently(fill, chunks, config=None, is_mc=False, max_workers=None):
    """Produces chunks of input in parallel, then merges and commits them.

    Each chunk is written by its own worker into its own batch. The batches
    are merged in chunk order, so the result does not depend on scheduling.
    If any worker fails, every batch is discarded and the error propagates.

    Parameters
    ----------
    fill : callable
        Function called as `fill(batch, chunk)`, which writes the events of
        one chunk of input into a batch
    chunks : List[object]
        Chunks of input, in order
    config : ProductionConfig, optional
        Production configuration shared by all the workers
    is_mc : bool, default False
        Whether the batches hold Monte-Carlo truth information
    max_workers : int, optional
        Maximum number of concurrent workers

    Returns
    -------
    DerivedData
        Committed data
    """
    batches = [ProductionBatch(config=config, is_mc=is_mc) for _ in chunks]
    try:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(fill, batch, chunk)
                for batch, chunk in zip(batches, chunks)
            ]
            for future in futures:
                future.result()

    except Exception:
        for batch in batches:
            if not batch.closed and batch._writer is None:
                batch.discard()
        raise

    return merge_batches(batches).commit()

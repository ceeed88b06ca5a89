"""Numba JIT compiled graph routines.

Graphs are stored as adjacency lists: the children of node `i` are
`values[offsets[i]:offsets[i+1]]`.
"""

import numba as nb
import numpy as np

__all__ = ["find_cycle"]


@nb.njit(cache=True)
def find_cycle(offsets: nb.int64[:], values: nb.int64[:]) -> nb.int64[:]:
    """Finds a cycle in a directed graph stored as an adjacency list.

    Parameters
    ----------
    offsets : np.ndarray
        (N+1) Offsets of the children of each node
    values : np.ndarray
        (M) Concatenated children of all nodes, each in [0, N)

    Returns
    -------
    np.ndarray
        Nodes along the first cycle found, closed by its first node. Empty
        if the graph is acyclic.
    """
    num_nodes = len(offsets) - 1
    state = np.zeros(num_nodes, dtype=np.uint8)  # 0: new, 1: on stack, 2: done
    stack = np.empty(num_nodes, dtype=np.int64)
    pos = np.empty(num_nodes, dtype=np.int64)
    for root in range(num_nodes):
        if state[root] != 0:
            continue

        # Iterative depth-first search, each level holds its next child
        stack[0] = root
        pos[0] = offsets[root]
        state[root] = 1
        depth = 1
        while depth > 0:
            node = stack[depth - 1]
            if pos[depth - 1] == offsets[node + 1]:
                state[node] = 2
                depth -= 1
                continue

            child = values[pos[depth - 1]]
            pos[depth - 1] += 1
            if state[child] == 1:
                start = depth - 1
                while stack[start] != child:
                    start -= 1
                cycle = np.empty(depth - start + 1, dtype=np.int64)
                cycle[: depth - start] = stack[start:depth]
                cycle[depth - start] = child
                return cycle

            if state[child] == 0:
                state[child] = 1
                stack[depth] = child
                pos[depth] = offsets[child]
                depth += 1

    return np.empty(0, dtype=np.int64)

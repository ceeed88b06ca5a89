"""Numba JIT compiled derivations of the dynamic columns.

Dynamic columns are never stored: they are recomputed on every access from
the stored kinematic triple (pt, eta, phi) or from the stored cluster counts,
so that they can never diverge from their inputs. Each kernel accepts either
scalars or arrays of floats.

Note that the transverse components follow the convention of the stored
data: `px` is built from the sine and `py` from the cosine of phi.
"""

import numba as nb
import numpy as np

__all__ = ["theta", "px", "py", "pz", "p", "crossed_rows_over_findable"]


@nb.njit(cache=True)
def theta(eta):
    """Computes the polar angle from the pseudorapidity.

    Parameters
    ----------
    eta : Union[float, np.ndarray]
        Pseudorapidity

    Returns
    -------
    Union[float, np.ndarray]
        Polar angle in radians
    """
    return 2.0 * np.arctan(np.exp(-eta))


@nb.njit(cache=True)
def px(pt, phi):
    """Computes the momentum along x in GeV/c.

    Parameters
    ----------
    pt : Union[float, np.ndarray]
        Transverse momentum in GeV/c
    phi : Union[float, np.ndarray]
        Azimuthal angle in radians

    Returns
    -------
    Union[float, np.ndarray]
        Momentum along x
    """
    return pt * np.sin(phi)


@nb.njit(cache=True)
def py(pt, phi):
    """Computes the momentum along y in GeV/c.

    Parameters
    ----------
    pt : Union[float, np.ndarray]
        Transverse momentum in GeV/c
    phi : Union[float, np.ndarray]
        Azimuthal angle in radians

    Returns
    -------
    Union[float, np.ndarray]
        Momentum along y
    """
    return pt * np.cos(phi)


@nb.njit(cache=True)
def pz(pt, eta):
    """Computes the longitudinal momentum in GeV/c.

    Parameters
    ----------
    pt : Union[float, np.ndarray]
        Transverse momentum in GeV/c
    eta : Union[float, np.ndarray]
        Pseudorapidity

    Returns
    -------
    Union[float, np.ndarray]
        Momentum along z
    """
    return pt * np.sinh(eta)


@nb.njit(cache=True)
def p(pt, eta):
    """Computes the momentum magnitude in GeV/c.

    Parameters
    ----------
    pt : Union[float, np.ndarray]
        Transverse momentum in GeV/c
    eta : Union[float, np.ndarray]
        Pseudorapidity

    Returns
    -------
    Union[float, np.ndarray]
        Total momentum
    """
    return pt * np.cosh(eta)


@nb.njit(cache=True, error_model="numpy")
def crossed_rows_over_findable(crossed_rows, findable):
    """Computes the fraction of findable TPC clusters with a crossed row.

    A zero denominator follows IEEE semantics (`inf` or `nan`).

    Parameters
    ----------
    crossed_rows : Union[float, np.ndarray]
        Number of TPC crossed rows
    findable : Union[float, np.ndarray]
        Number of findable TPC clusters

    Returns
    -------
    Union[float, np.ndarray]
        Crossed rows over findable clusters
    """
    return crossed_rows / findable

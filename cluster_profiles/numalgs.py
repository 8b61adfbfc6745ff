"""
Numerical algorithms for use in the backend of CP.

This module holds the two pieces of numerical machinery the profile pipelines are built from:

- **Quadrature**: :py:func:`integrate_quad` wraps adaptive Gauss-Kronrod subdivision (:py:func:`scipy.integrate.quad_vec`)
  with a fixed rule order and subdivision budget. Failing to reach the requested tolerance is not an error: the
  achieved estimate is returned together with its error and a :py:class:`~cluster_profiles.utilities.exceptions.QuadratureAccuracyWarning`.
- **Tabulation**: :py:func:`log_radial_grid` builds the log-spaced radial nodes, :py:func:`tabulate` and
  :py:func:`tabulate_integral` evaluate a quantity at each node, and :py:func:`enforce_monotonic` removes the
  non-physical decreases integrator noise leaves in cumulative tables.
"""
import warnings
from typing import Callable, Mapping, NamedTuple

import numpy as np
from numpy.typing import NDArray
from scipy.integrate import quad_vec
from tqdm.auto import tqdm

from cluster_profiles.utilities.config import cpparams
from cluster_profiles.utilities.exceptions import QuadratureAccuracyWarning
from cluster_profiles.utilities.logging import devlog, mylog

# quad_vec converges when err < max(epsabs, epsrel*|I|); a zero floor would never converge on a vanishing integral.
_EPSABS_FLOOR = 1e-200

NodeCallback = Callable[[int, float, float], None]


class QuadratureResult(NamedTuple):
    """Outcome of a single adaptive quadrature."""

    value: float
    error: float
    converged: bool
    neval: int


class QuadratureSettings(NamedTuple):
    """Tolerances, subdivision budget and rule order of an adaptive quadrature."""

    epsabs: float = 0.0
    epsrel: float = 1e-6
    limit: int = 1024
    quadrature: str = "gk15"

    @classmethod
    def from_config(cls, section: Mapping, **overrides) -> "QuadratureSettings":
        """Read the settings from a ``numerics`` section of the configuration."""
        kwargs = {k: section[k] for k in cls._fields if k in section}
        kwargs.update(overrides)

        return cls(
            epsabs=float(kwargs.get("epsabs", cls._field_defaults["epsabs"])),
            epsrel=float(kwargs.get("epsrel", cls._field_defaults["epsrel"])),
            limit=int(kwargs.get("limit", cls._field_defaults["limit"])),
            quadrature=str(kwargs.get("quadrature", cls._field_defaults["quadrature"])),
        )


def integrate_quad(
    function: Callable[[float], float],
    a: float,
    b: float,
    epsabs: float = 0.0,
    epsrel: float = 1e-6,
    limit: int = 1024,
    quadrature: str = "gk15",
    warn: bool = True,
) -> QuadratureResult:
    """
    Adaptively integrate ``function`` from ``a`` to ``b``.

    Parameters
    ----------
    function: callable
        The integrand, ``f(x) -> float``.
    a: float
        The lower bound.
    b: float
        The upper bound. May be ``np.inf`` or a large finite surrogate for it.
    epsabs: float, optional
        Absolute tolerance. Default ``0``: only the relative tolerance applies.
    epsrel: float, optional
        Relative tolerance. Default ``1e-6``.
    limit: int, optional
        Maximum number of subintervals. Default ``1024``.
    quadrature: str, optional
        The Gauss-Kronrod rule applied on each subinterval, ``"gk15"`` (lower order) or ``"gk21"`` (higher order).
    warn: bool, optional
        Issue a :py:class:`QuadratureAccuracyWarning` if the tolerance is not reached. Default ``True``.

    Returns
    -------
    QuadratureResult
        The estimate, its absolute error, whether the tolerance was reached, and the number of evaluations.
    """
    if a == b:
        return QuadratureResult(0.0, 0.0, True, 0)

    value, error, info = quad_vec(
        function,
        a,
        b,
        epsabs=max(epsabs, _EPSABS_FLOOR),
        epsrel=epsrel,
        limit=limit,
        quadrature=quadrature,
        full_output=True,
    )
    result = QuadratureResult(float(value), float(error), bool(info.success), int(info.neval))

    if warn and not result.converged:
        warnings.warn(
            f"Quadrature over [{a:g}, {b:g}] stopped before epsrel={epsrel:g} ({info.message}); "
            f"achieved error {result.error:.3e} on {result.value:.6e}.",
            QuadratureAccuracyWarning,
            stacklevel=2,
        )

    return result


def log_radial_grid(r_min: float, r_max: float, n: int, r_0: float = 0.0) -> NDArray[np.floating]:
    """
    Build ``n`` log-spaced radial nodes.

    ``r[k] = r_min * 10**(k * log10(r_max/r_min) / (n - 1))`` for ``k = 1 .. n-1`` and ``r[0] = r_0``, so ``r[-1] == r_max``
    and the first node is replaced by the table's boundary value.

    Parameters
    ----------
    r_min: float
        The radius at ``k = 0`` before it is replaced by ``r_0``.
    r_max: float
        The outermost radius.
    n: int
        The number of nodes.
    r_0: float, optional
        The boundary value placed at ``r[0]``. Default ``0``.

    Returns
    -------
    :py:class:`numpy.ndarray`
        The nodes.
    """
    if not 0 < r_min < r_max:
        raise ValueError(f"Invalid radial range [{r_min}, {r_max}].")

    log_dr = np.log10(r_max / r_min) / (n - 1)
    radii = r_min * 10 ** (log_dr * np.arange(n))
    radii[-1] = r_max
    radii[0] = r_0

    return radii


def _progress(iterable, desc: str, total: int):
    return tqdm(
        iterable,
        desc=desc,
        total=total,
        leave=False,
        disable=cpparams.config.system.preferences.disable_progress_bars,
    )


def tabulate(
    function: Callable[[float], float],
    radii: NDArray[np.floating],
    start: int = 1,
    desc: str = "Tabulating",
    callback: NodeCallback = None,
) -> NDArray[np.floating]:
    """
    Evaluate ``function`` at every node from ``start`` on. Nodes before ``start`` are left at zero.

    ``callback(k, r, y)`` is invoked after each node.
    """
    values = np.zeros(radii.size)

    for k in _progress(range(start, radii.size), desc, radii.size - start):
        values[k] = function(radii[k])

        if callback is not None:
            callback(k, radii[k], values[k])

    return values


def tabulate_integral(
    integrand: Callable[[float], float],
    radii: NDArray[np.floating],
    bounds: Callable[[float], tuple[float, float]],
    settings: QuadratureSettings,
    start: int = 1,
    desc: str = "Integrating",
    callback: NodeCallback = None,
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    """
    Integrate ``integrand`` once per node.

    Parameters
    ----------
    integrand: callable
        The integrand ``f(x)``.
    radii: array
        The nodes.
    bounds: callable
        ``bounds(r) -> (a, b)``, the integration range at node ``r``.
    settings: QuadratureSettings
        Tolerances, subdivision limit and rule order.
    start: int, optional
        The first node to integrate. Default ``1``; the boundary node is left at zero.
    desc: str, optional
        The progress bar / log label.
    callback: callable, optional
        ``callback(k, r, y)`` is invoked after each node.

    Returns
    -------
    values: :py:class:`numpy.ndarray`
        The integral at each node.
    errors: :py:class:`numpy.ndarray`
        The absolute error estimate at each node.

    Notes
    -----
    Nodes that fail to converge keep their achieved estimate. Rather than one warning per node, a single
    warning is logged with the number of such nodes and the worst error.
    """
    values, errors = np.zeros(radii.size), np.zeros(radii.size)
    unconverged, neval = 0, 0

    for k in _progress(range(start, radii.size), desc, radii.size - start):
        a, b = bounds(radii[k])
        result = integrate_quad(integrand, a, b, *settings, warn=False)

        values[k], errors[k] = result.value, result.error
        neval += result.neval

        if not result.converged:
            unconverged += 1

        if callback is not None:
            callback(k, radii[k], values[k])

    devlog.debug(
        "%s: %d nodes, %d integrand evaluations, max error %.3e.",
        desc,
        radii.size - start,
        neval,
        np.amax(errors, initial=0.0),
    )

    if unconverged:
        mylog.warning(
            "%s: %d of %d nodes did not reach epsrel=%g (max achieved error %.3e).",
            desc,
            unconverged,
            radii.size - start,
            settings.epsrel,
            np.amax(errors, initial=0.0),
        )

    return values, errors


def enforce_monotonic(y: NDArray[np.floating], decreasing: bool = False) -> tuple[NDArray[np.floating], int]:
    """
    Clamp ``y`` to be non-decreasing (or non-increasing), i.e. ``y[k] = max(y[k], y[k-1])``.

    Parameters
    ----------
    y: array
        The tabulated profile.
    decreasing: bool, optional
        Clamp to a non-increasing profile instead. Default ``False``.

    Returns
    -------
    y: :py:class:`numpy.ndarray`
        The clamped copy of the profile.
    n: int
        The number of nodes that were changed.
    """
    accumulate = np.minimum.accumulate if decreasing else np.maximum.accumulate
    _y = accumulate(np.asarray(y, dtype="f8"))

    return _y, int(np.count_nonzero(_y != y))

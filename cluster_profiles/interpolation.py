"""
Spline interpolants for tabulated profiles.

A :py:class:`ProfileSpline` is a natural cubic spline fitted once to a profile table, paired with an
:py:class:`InterpolationAccelerator` which remembers the last bracketing interval. The particle sampler evaluates the
same profile many times with slowly varying radii, so scalar lookups are usually O(1); array queries go through
:py:class:`scipy.interpolate.CubicSpline` directly.

The accelerator is mutable, so a spline must never be shared between threads: each worker builds its own
(see :py:mod:`cluster_profiles.context`).
"""
from typing import Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.interpolate import CubicSpline

from cluster_profiles.utilities.types import NumericInput


class InterpolationAccelerator:
    """
    Last-interval cache for repeated lookups in a sorted abscissa.

    Attributes
    ----------
    cache : int
        Index of the interval found by the previous lookup.
    hits, misses : int
        Lookup statistics.
    """

    def __init__(self):
        self.cache: int = 0
        self.hits: int = 0
        self.misses: int = 0

    def find(self, xa: NDArray[np.floating], x: float) -> int:
        """
        Return ``i`` such that ``xa[i] <= x < xa[i+1]`` (``i = len(xa) - 2`` for ``x == xa[-1]``).

        ``x`` must lie within ``[xa[0], xa[-1]]``.
        """
        i = self.cache

        if xa[i] <= x < xa[i + 1]:
            self.hits += 1
            return i

        # Sequential queries usually move to a neighbouring interval.
        if i + 2 < xa.size and xa[i + 1] <= x < xa[i + 2]:
            i += 1
        elif i > 0 and xa[i - 1] <= x < xa[i]:
            i -= 1
        else:
            i = int(np.searchsorted(xa, x, side="right")) - 1
            i = min(max(i, 0), xa.size - 2)

        self.misses += 1
        self.cache = i

        return i

    def reset(self):
        self.cache, self.hits, self.misses = 0, 0, 0

    def __repr__(self):
        return f"<InterpolationAccelerator cache={self.cache} hits={self.hits} misses={self.misses}>"


class ProfileSpline:
    """
    Natural cubic spline over a profile table, with an evaluation accelerator.

    Parameters
    ----------
    x: array-like
        Strictly increasing abscissa.
    y: array-like
        The tabulated values.
    extrapolation: str, optional
        Behaviour for queries outside ``[x[0], x[-1]]``:

        - ``"clip"`` (default): the query is clipped to the table range.
        - ``"keplerian"``: beyond ``x_max`` the value falls off as ``y(x_max) * x_max / x``. Used for potentials.
    x_max: float, optional
        Where the Keplerian fall-off starts. Defaults to ``x[-1]``; must lie inside the table.
    name: str, optional
        A label used in ``repr``.

    Notes
    -----
    The fitted spline is read-only after construction; only the accelerator changes on evaluation.
    """

    def __init__(
        self,
        x: ArrayLike,
        y: ArrayLike,
        extrapolation: Literal["clip", "keplerian"] = "clip",
        x_max: float = None,
        name: str = "profile",
    ):
        self.x = np.array(x, dtype="f8")
        self.y = np.array(y, dtype="f8")
        self.name = name

        if self.x.size < 3 or self.x.size != self.y.size:
            raise ValueError(
                f"Cannot fit a spline to tables of sizes {self.x.size} and {self.y.size}."
            )
        if np.any(np.diff(self.x) <= 0):
            raise ValueError(f"The abscissa of the {name} table is not strictly increasing.")
        if extrapolation not in ("clip", "keplerian"):
            raise ValueError(f"Unknown extrapolation mode '{extrapolation}'.")

        self.x.flags.writeable = False
        self.y.flags.writeable = False

        self._spline = CubicSpline(self.x, self.y, bc_type="natural", extrapolate=False)
        self._coefficients = self._spline.c
        self.accelerator = InterpolationAccelerator()

        self.extrapolation = extrapolation
        self.x_max = self.x[-1] if x_max is None else float(x_max)

        if not self.x[0] < self.x_max <= self.x[-1]:
            raise ValueError(f"x_max={self.x_max} lies outside the {name} table.")

        self.y_max = self._evaluate_scalar(self.x_max)

    @classmethod
    def inverse(cls, x: ArrayLike, y: ArrayLike, name: str = "inverse profile") -> "ProfileSpline":
        """
        Fit ``x`` as a function of ``y`` for a non-decreasing table.

        Repeated ``y`` values (plateaus left by monotone clamping) are collapsed to their first node so the
        inverse abscissa is strictly increasing.
        """
        x, y = np.asarray(x, dtype="f8"), np.asarray(y, dtype="f8")

        if np.any(np.diff(y) < 0):
            raise ValueError(f"Cannot invert the non-monotonic {name} table.")

        _y, idx = np.unique(y, return_index=True)

        return cls(_y, x[idx], name=name)

    @property
    def bounds(self) -> tuple[float, float]:
        return float(self.x[0]), float(self.x[-1])

    def _evaluate_scalar(self, x: float) -> float:
        i = self.accelerator.find(self.x, x)
        dx = x - self.x[i]
        c = self._coefficients[:, i]

        return float(((c[0] * dx + c[1]) * dx + c[2]) * dx + c[3])

    def __call__(self, x: NumericInput) -> NumericInput:
        if np.ndim(x) == 0:
            x = float(x)

            if self.extrapolation == "keplerian" and x >= self.x_max:
                return self.y_max * self.x_max / x

            return self._evaluate_scalar(min(max(x, self.x[0]), self.x[-1]))

        x = np.asarray(x, dtype="f8")
        values = self._spline(np.clip(x, self.x[0], self.x[-1]))

        if self.extrapolation == "keplerian":
            outer = x >= self.x_max
            values[outer] = self.y_max * self.x_max / x[outer]

        return values

    def derivative(self, x: NumericInput, nu: int = 1) -> NumericInput:
        """The ``nu``-th derivative of the spline inside the table range."""
        return self._spline(np.clip(x, self.x[0], self.x[-1]), nu)

    def release(self):
        """Drop the fitted coefficients and table storage."""
        self._spline = None
        self._coefficients = None
        self.x = self.y = None

    def __len__(self):
        return 0 if self.x is None else self.x.size

    def __repr__(self):
        return f"<ProfileSpline {self.name} n={len(self)} extrapolation={self.extrapolation}>"

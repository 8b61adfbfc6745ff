"""
Per-worker profile state.

Every worker that builds profiles owns one :py:class:`ProfileContext`: the splines of the cluster it is currently
processing, the tables they were fitted to, and how far the setup chain has progressed. Contexts are never shared;
by default each thread gets its own through :py:func:`get_context`, but a context may also be created and passed
explicitly to the setup and evaluation functions.

The setup chain of a cluster is strictly ordered::

    UNINITIALIZED -> DM_BUILT -> GAS_MASS_BUILT -> GAS_POTENTIAL_BUILT -> ENERGY_BUILT

with the gas stages only run when the baryon fraction is positive. Resetting the context for a new cluster releases
every spline built for the previous one.
"""
import threading
from enum import IntEnum
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from cluster_profiles.utilities.exceptions import ProfileNotBuiltError, ProfileOrderError
from cluster_profiles.utilities.logging import devlog

if TYPE_CHECKING:
    from cluster_profiles.cluster import ClusterDescriptor
    from cluster_profiles.interpolation import ProfileSpline


class ProfileState(IntEnum):
    """Progress of a cluster's setup chain on one context."""

    UNINITIALIZED = 0
    DM_BUILT = 1
    GAS_MASS_BUILT = 2
    GAS_POTENTIAL_BUILT = 3
    ENERGY_BUILT = 4


SPLINE_KINDS = (
    "dm_mass_inverse",
    "gas_mass",
    "gas_mass_inverse",
    "gas_potential",
    "internal_energy",
)
""" tuple of str: The spline handles held by a :py:class:`ProfileContext`."""


class ProfileContext:
    """
    The splines, tables and setup state of one worker.

    Attributes
    ----------
    cluster : ClusterDescriptor or None
        The cluster the splines were built for.
    state : ProfileState
        How far the setup chain has progressed for ``cluster``.
    tables : dict
        The ``(radius, value)`` tables behind each spline, keyed by spline kind.
    """

    def __init__(self, name: str = None):
        self.name = name or threading.current_thread().name
        self.cluster: "ClusterDescriptor" = None
        self.state: ProfileState = ProfileState.UNINITIALIZED
        self.tables: dict[str, tuple[NDArray[np.floating], NDArray[np.floating]]] = {}
        self._splines: dict[str, "ProfileSpline"] = {k: None for k in SPLINE_KINDS}

    def __repr__(self):
        return f"<ProfileContext {self.name} cluster={self.cluster} state={self.state.name}>"

    def __getitem__(self, kind: str) -> "ProfileSpline":
        spline = self._splines[kind]

        if spline is None:
            raise ProfileNotBuiltError(kind, self)

        return spline

    def __contains__(self, kind: str) -> bool:
        return self._splines.get(kind) is not None

    def bind(self, kind: str, spline: "ProfileSpline"):
        """Attach ``spline`` as the ``kind`` handle, releasing the spline it replaces."""
        if kind not in self._splines:
            raise KeyError(f"Unknown spline kind '{kind}'.")

        if self._splines[kind] is not None:
            self._splines[kind].release()

        self._splines[kind] = spline

    def release(self):
        """Release every spline and table held by this context."""
        for kind, spline in self._splines.items():
            if spline is not None:
                spline.release()
                self._splines[kind] = None

        self.tables.clear()
        self.cluster = None
        self.state = ProfileState.UNINITIALIZED

    def reset(self, cluster: "ClusterDescriptor"):
        """Release the previous cluster's profiles and start the chain for ``cluster``."""
        if self.cluster is not None:
            devlog.debug("%s: releasing profiles of %s.", self.name, self.cluster)

        self.release()
        self.cluster = cluster

    def holds(self, cluster: "ClusterDescriptor") -> bool:
        """``True`` if the profiles on this context were built for ``cluster``."""
        return self.cluster is cluster or (self.cluster is not None and self.cluster == cluster)

    def spline(self, kind: str, cluster: "ClusterDescriptor" = None) -> "ProfileSpline":
        """
        Return the ``kind`` spline, optionally checking it was built for ``cluster``.

        Raises
        ------
        ProfileNotBuiltError
            If the spline was never built on this context, or was built for another cluster.
        """
        if cluster is not None and not self.holds(cluster):
            raise ProfileNotBuiltError(kind, self)

        return self[kind]

    def require(self, cluster: "ClusterDescriptor", state: ProfileState):
        """
        Check that the chain for ``cluster`` has reached ``state`` on this context.

        Raises
        ------
        ProfileOrderError
            If the context holds another cluster or has not reached ``state``.
        """
        if not self.holds(cluster):
            raise ProfileOrderError(
                f"{self} holds profiles of {self.cluster}, not {cluster}. Run the earlier setup stages first."
            )
        if self.state < state:
            raise ProfileOrderError(
                f"{self} has not reached {state.name} for {cluster} (currently {self.state.name})."
            )

    def advance(self, state: ProfileState):
        self.state = ProfileState(max(self.state, state))


_local = threading.local()


def get_context() -> ProfileContext:
    """Return the calling thread's :py:class:`ProfileContext`, creating it on first use."""
    context = getattr(_local, "context", None)

    if context is None:
        context = ProfileContext()
        _local.context = context

    return context


def release_context():
    """Release the calling thread's profiles."""
    context = getattr(_local, "context", None)

    if context is not None:
        context.release()

"""
Dark Matter Profiles Module
===========================

Closed-form density, mass and potential of the dark matter halo. Densities and masses use the NFW form [1]_,
the potential uses the Hernquist form [2]_ with the halo's total mass, so no dark matter table is needed
except the inverse mass profile built by :py:func:`cluster_profiles.pipelines.setup_dm_mass_profile`.

All functions are vectorised over ``r`` and assume ``r > 0``; the mass profiles are finite at ``r = 0``.

References
----------
.. [1] Navarro, J. F., Frenk, C. S., & White, S. D. M. (1997). A Universal Density Profile from Hierarchical Clustering.
       The Astrophysical Journal, 490(2), 493–508.
.. [2] Hernquist, L. (1990). An Analytical Model for Spherical Galaxies and Bulges. The Astrophysical Journal, 356, 359–364.
"""
from typing import TYPE_CHECKING

import numpy as np

from cluster_profiles.utilities.types import NumericInput

if TYPE_CHECKING:
    from cluster_profiles.cluster import ClusterDescriptor


def hernquist_density_profile(m: float, a: float, r: NumericInput) -> NumericInput:
    r"""
    Hernquist density of a halo of total mass ``m`` and scale radius ``a``.

    .. math::

        \rho(r) = \frac{M}{2\pi}\frac{a}{r(r+a)^3}
    """
    return m / (2 * np.pi) * a / (r * (r + a) ** 3)


def hernquist_mass_profile(m: float, a: float, r: NumericInput) -> NumericInput:
    r"""
    Mass of a Hernquist halo enclosed within ``r``, :math:`M(<r) = M r^2/(r+a)^2`.
    """
    return m * r**2 / (r + a) ** 2


def dm_density_profile(cluster: "ClusterDescriptor", r: NumericInput) -> NumericInput:
    r"""
    NFW dark matter density of ``cluster``.

    .. math::

        \rho(r) = \frac{\rho_0}{(r/r_s)(1+r/r_s)^2}
    """
    rs, rho0 = cluster.rs, cluster.rho0_nfw

    return rho0 / (r / rs * (1 + r / rs) ** 2)


def dm_mass_profile(r: NumericInput, cluster: "ClusterDescriptor") -> NumericInput:
    r"""
    NFW dark matter mass of ``cluster`` enclosed within ``r``.

    .. math::

        M(<r) = 4\pi\rho_0 r_s^3\left[\ln\left(\frac{r_s+r}{r_s}\right) - \frac{r}{r_s+r}\right]

    Parameters
    ----------
    r : float or array-like
        The radius.
    cluster : ClusterDescriptor
        The cluster.

    Returns
    -------
    float or array
        The enclosed mass. Diverges logarithmically as ``r`` grows.
    """
    rs, rho0 = cluster.rs, cluster.rho0_nfw

    return 4 * np.pi * rho0 * rs**3 * (np.log((rs + r) / rs) - r / (rs + r))


def dm_potential_profile(cluster: "ClusterDescriptor", r: NumericInput) -> NumericInput:
    """
    Hernquist potential of the dark matter halo, returned as :math:`\\Psi = -\\Phi = GM/(r+a)`.

    :math:`\\Psi` is non-negative and vanishes at infinity.
    """
    return cluster.parameters.gravitational_constant * cluster.mass_dm / (r + cluster.a_hernq)

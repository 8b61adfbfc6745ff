"""
Internal Energy Profiles Module
===============================

Closed-form specific internal energy of the gas in hydrostatic equilibrium for the restricted case of a
Hernquist dark matter halo and a :math:`\\beta = 2/3` gas atmosphere without cutoff [1]_, and the conversion
between specific internal energy and temperature.

The general solution (any density, NFW mass, cutoff, cool cores) is tabulated by
:py:func:`cluster_profiles.pipelines.setup_internal_energy_profile`.

References
----------
.. [1] Donnert, J. M. F. (2014). Initial conditions for idealized clusters of galaxies. MNRAS, 438, 1971.
"""
from typing import TYPE_CHECKING

import numpy as np
from unyt import unyt_array
from unyt.dimensions import temperature as temperature_dimension

from cluster_profiles.utilities.physics import kboltz, mp, mu
from cluster_profiles.utilities.types import NumericInput

if TYPE_CHECKING:
    from cluster_profiles.cluster import ClusterDescriptor


def _f1(r, rc, a):
    # Antiderivative of rc^2 / ((rc^2 + r^2)(r + a)^2).
    rc2, a2 = rc * rc, a * a

    result = (
        (a2 - rc2) * np.arctan(r / rc)
        - rc * (a2 + rc2) / (a + r)
        + a * rc * np.log((a + r) ** 2 / (rc2 + r * r))
    )

    return result * rc / (a2 + rc2) ** 2


def _f2(r, rc):
    # Gas self-gravity term of the beta = 2/3 solution.
    return np.arctan(r / rc) ** 2 / (2 * rc) + np.arctan(r / rc) / r


def internal_energy_profile_analytic(
    cluster: "ClusterDescriptor", r: NumericInput
) -> NumericInput:
    r"""
    Analytic specific internal energy of the gas of ``cluster``.

    Only valid for a Hernquist halo and a :math:`\beta=2/3` gas profile without cutoff; the box size is used as the
    outer ("open") boundary where the pressure vanishes.

    .. math::

        u(r) = \frac{G}{\gamma - 1}\left(1 + \frac{r^2}{r_c^2}\right)
        \left[M_{\rm DM}\left(F_1(r_{\max}) - F_1(r)\right) + 4\pi\rho_0 r_c^3 \left(F_2(r_{\max}) - F_2(r)\right)\right]

    Parameters
    ----------
    cluster : ClusterDescriptor
        The cluster.
    r : float or array-like
        The radius, ``0 < r < boxsize``.

    Returns
    -------
    float or array
        The specific internal energy in code units (``kpc**2/Myr**2``).
    """
    params = cluster.parameters
    rho0, a, rc = cluster.rho0, cluster.a_hernq, cluster.rcore
    rmax = params.boxsize

    return (
        params.gravitational_constant
        / (params.adiabatic_index - 1)
        * (1 + (r / rc) ** 2)
        * (
            cluster.mass_dm * (_f1(rmax, rc, a) - _f1(r, rc, a))
            + 4 * np.pi * rho0 * rc**3 * (_f2(rmax, rc) - _f2(r, rc))
        )
    )


def internal_energy_to_temperature(u: NumericInput, adiabatic_index: float) -> unyt_array:
    """
    Convert specific internal energy (``kpc**2/Myr**2``) to temperature :math:`k_BT = (\\gamma-1)u\\mu m_p` in keV.
    """
    temp = unyt_array(u, "kpc**2/Myr**2") * (adiabatic_index - 1) * mu * mp
    return temp.to("keV")


def temperature_to_internal_energy(temperature, adiabatic_index: float) -> NumericInput:
    """
    Inverse of :py:func:`internal_energy_to_temperature`. Bare numbers are taken to be in keV.
    """
    if not hasattr(temperature, "units"):
        temperature = unyt_array(temperature, "keV")
    elif temperature.units.dimensions == temperature_dimension:
        temperature = temperature * kboltz

    u = temperature / ((adiabatic_index - 1) * mu * mp)
    return u.to_value("kpc**2/Myr**2")

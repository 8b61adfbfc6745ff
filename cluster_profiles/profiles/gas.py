"""
Gas Profiles Module
===================

Beta-model gas density with a fourth-order outer cutoff, optionally with a second, more centrally peaked
"cool-core" component, and the exact enclosed mass and potential of the :math:`\\beta = 2/3` case.

The general (any :math:`\\beta`) mass and potential are tabulated numerically by :py:mod:`cluster_profiles.pipelines`;
the closed forms here are a fast alternative and a cross-check of those tables.

Notes
-----
The primary component is

.. math::

    \\rho(r) = \\rho_0 \\frac{\\left(1 + (r/r_c)^2\\right)^{-3\\beta/2}}{1 + (r/r_{\\rm cut})^4}

and the cool-core component has :math:`\\rho_{0,cc} = \\rho_0 f_\\rho`, :math:`r_{c,cc} = r_c / f_{r_c}` and a fixed
exponent of -1 (i.e. :math:`\\beta = 2/3`).
"""
from typing import TYPE_CHECKING

import numpy as np

from cluster_profiles.utilities.config import cpparams
from cluster_profiles.utilities.types import NumericInput

if TYPE_CHECKING:
    from cluster_profiles.cluster import ClusterDescriptor, SimulationParameters

sqrt2 = np.sqrt(2.0)


def _cool_core_factors(parameters: "SimulationParameters" = None):
    # (rho0_fac, rc_fac) of the run, or None when the run has no cool cores.
    if parameters is None:
        section = cpparams.config.cool_cores
        if not section.double_beta:
            return None
        return float(section.rho0_fac), float(section.rc_fac)

    if not parameters.double_beta_cool_cores:
        return None
    return parameters.rho0_fac, parameters.rc_fac


def gas_density_profile(
    r: NumericInput,
    rho0: float,
    beta: float,
    rc: float,
    rcut: float,
    cuspy: bool = False,
    *,
    rho0_fac: float = None,
    rc_fac: float = None,
    parameters: "SimulationParameters" = None,
) -> NumericInput:
    """
    Double beta-model gas density.

    Parameters
    ----------
    r : float or array-like
        The radius.
    rho0, beta, rc, rcut : float
        Central density, beta exponent, core radius and cutoff radius of the primary component.
    cuspy : bool
        The cluster has a cool core.
    rho0_fac, rc_fac : float, optional
        Cool-core scale factors. If both are given, the cool-core component is added to cuspy clusters
        regardless of the run's toggle.
    parameters : SimulationParameters, optional
        The run parameters supplying the cool-core toggle and factors when they are not given explicitly. If not
        provided, the ``cool_cores`` section of the configuration is used.

    Returns
    -------
    float or array
        The gas density.
    """
    cutoff = 1 + (r / rcut) ** 3 * (r / rcut)

    rho = rho0 * (1 + (r / rc) ** 2) ** (-1.5 * beta) / cutoff

    if not cuspy:
        return rho

    if (rho0_fac is None) or (rc_fac is None):
        factors = _cool_core_factors(parameters)
        if factors is None:
            return rho
        rho0_fac = factors[0] if rho0_fac is None else rho0_fac
        rc_fac = factors[1] if rc_fac is None else rc_fac

    rho0_cc = rho0 * rho0_fac
    rc_cc = rc / rc_fac

    return rho + rho0_cc / (1 + (r / rc_cc) ** 2) / cutoff


def cluster_gas_density(
    cluster: "ClusterDescriptor", r: NumericInput, rcut: float = None
) -> NumericInput:
    """Gas density of ``cluster``, optionally with the cutoff radius replaced by ``rcut``."""
    return gas_density_profile(
        r,
        cluster.rho0,
        cluster.beta,
        cluster.rcore,
        cluster.rcut if rcut is None else rcut,
        cluster.have_cuspy,
        parameters=cluster.parameters,
    )


def _beta23_mass(r, rho0, rc, rcut):
    # M(<r) for rho0 / ((1 + r^2/rc^2)(1 + r^4/rcut^4)) by partial fractions.
    r2, rc2, rcut2 = r * r, rc * rc, rcut * rcut

    log_term = np.log(rcut2 - sqrt2 * rcut * r + r2) - np.log(rcut2 + sqrt2 * rcut * r + r2)
    atan_term = np.arctan(sqrt2 * r / rcut + 1) - np.arctan(1 - sqrt2 * r / rcut)

    mr = (
        rho0
        * rc2
        * rcut2
        * rcut
        / (8 * (rcut2**2 + rc2**2))
        * (
            sqrt2 * (rc2 - rcut2) * log_term
            + 2 * sqrt2 * (rc2 + rcut2) * atan_term
            - 8 * rc * rcut * np.arctan(r / rc)
        )
    )

    return 4 * np.pi * mr


def _beta23_potential(r, rho0, rc, rcut, G):
    # Psi = G M(<r)/r + 4 pi G int_r^inf rho x dx, so Psi -> 0 at infinity.
    r2, rc2, rcut2 = r * r, rc * rc, rcut * rcut

    outer = (
        rho0
        * rc2
        * rcut2**2
        / (2 * (rcut2**2 + rc2**2))
        * (
            rc2 / rcut2 * np.arctan2(rcut2, r2)
            - np.log(rc2 + r2)
            + 0.5 * np.log(rcut2**2 + r2**2)
        )
    )

    return G * (_beta23_mass(r, rho0, rc, rcut) / r + 4 * np.pi * outer)


def mass_profile_23(r: NumericInput, cluster: "ClusterDescriptor") -> NumericInput:
    """
    Exact enclosed gas mass of ``cluster`` for :math:`\\beta = 2/3`.

    The cluster's ``beta`` is ignored. When cool cores are enabled and the cluster is cuspy, the mass of the
    cool-core component is added.
    """
    mass = _beta23_mass(r, cluster.rho0, cluster.rcore, cluster.rcut)

    if cluster.cool_core_enabled:
        params = cluster.parameters
        mass = mass + _beta23_mass(
            r, cluster.rho0 * params.rho0_fac, cluster.rcore / params.rc_fac, cluster.rcut
        )

    return mass


def gas_potential_profile_23(cluster: "ClusterDescriptor", r: NumericInput) -> NumericInput:
    """
    Exact gas potential :math:`\\Psi = -\\Phi` of ``cluster`` for :math:`\\beta = 2/3`, vanishing at infinity.

    Requires ``r > 0``.
    """
    params = cluster.parameters
    psi = _beta23_potential(
        r, cluster.rho0, cluster.rcore, cluster.rcut, params.gravitational_constant
    )

    if cluster.cool_core_enabled:
        psi = psi + _beta23_potential(
            r,
            cluster.rho0 * params.rho0_fac,
            cluster.rcore / params.rc_fac,
            cluster.rcut,
            params.gravitational_constant,
        )

    return psi

"""
Profile pipelines.

Builders and evaluators of the tabulated cluster profiles. Each ``setup_*`` function builds one stage of the chain

.. code-block:: text

    dark matter mass -> dark matter potential -> gas mass -> gas potential -> internal energy

on a :py:class:`~cluster_profiles.context.ProfileContext` (by default the calling thread's), and every evaluator reads
the splines from the same context. :py:func:`setup_profiles` runs the complete chain for one cluster; the gas stages
are skipped when the baryon fraction is zero.

Tables are log-spaced over a per-profile radial range (see the ``numerics`` section of the configuration) and fitted
with natural cubic splines:

- **Dark matter mass**: the NFW mass normalised by the total dark matter mass on ``[r_min, boxsize/2]``. Only the
  inverse (mass fraction to radius) is splined; the forward profile is analytic.
- **Gas mass**: :math:`M(<r) = \\int_0^r 4\\pi x^2\\rho(x)\\,dx` on ``[r_min, 1.1 R_Sample]``, forward and inverse.
- **Gas potential**: :math:`\\Psi(r) = \\Psi_0 - \\int_0^r GM(x)/x^2\\,dx` with the gauge
  :math:`\\Psi_0 = \\int_0^\\infty GM(x)/x^2\\,dx`, so :math:`\\Psi \\to 0` at infinity. Beyond ``R_Sample`` the
  spline is replaced by the Keplerian fall-off.
- **Internal energy**: the hydrostatic solution

  .. math::

      u(r) = \\frac{G}{(\\gamma - 1)\\rho(r)}\\int_r^{\\sqrt{3}L}\\frac{\\rho(x)\\left(M_{\\rm gas}(x) + M_{\\rm DM}(x)\\right)}{x^2}\\,dx

  with :math:`L` the box size.
"""
from typing import TYPE_CHECKING

import numpy as np

from cluster_profiles.context import ProfileContext, ProfileState, get_context
from cluster_profiles.interpolation import ProfileSpline
from cluster_profiles.numalgs import (
    NodeCallback,
    QuadratureSettings,
    enforce_monotonic,
    integrate_quad,
    log_radial_grid,
    tabulate,
    tabulate_integral,
)
from cluster_profiles.profiles import (
    cluster_gas_density,
    dm_density_profile,
    dm_mass_profile,
    dm_potential_profile,
    internal_energy_to_temperature,
)
from cluster_profiles.utilities.config import cpparams
from cluster_profiles.utilities.exceptions import ProfileError
from cluster_profiles.utilities.logging import devlog, mylog
from cluster_profiles.utilities.types import NumericInput

if TYPE_CHECKING:
    from unyt import unyt_array

    from cluster_profiles.cluster import ClusterDescriptor

__all__ = [
    "setup_profiles",
    "setup_dm_mass_profile",
    "setup_dm_potential_profile",
    "setup_gas_mass_profile",
    "setup_gas_potential_profile",
    "setup_internal_energy_profile",
    "dm_density_profile",
    "dm_mass_profile",
    "dm_potential_profile",
    "inverted_dm_mass_profile",
    "gas_mass_profile",
    "inverted_gas_mass_profile",
    "gas_potential_profile",
    "internal_energy_profile",
    "temperature_profile",
]


def _resolve(context: ProfileContext) -> ProfileContext:
    return get_context() if context is None else context


def _table_size() -> int:
    return int(cpparams.config.numerics.table_size)


def _report(callback, radii, y):
    # Stages which post-process the node integrals report the final table.
    if callback is not None:
        for k in range(1, radii.size):
            callback(k, radii[k], y[k])


def _clamp(y, kind, decreasing=False):
    y, n_changed = enforce_monotonic(y, decreasing=decreasing)

    if n_changed:
        devlog.debug("Clamped %d nodes of the %s table.", n_changed, kind)

    return y


# ============================================================================================================== #
# Setup                                                                                                          #
# ============================================================================================================== #
def setup_dm_mass_profile(
    cluster: "ClusterDescriptor", *, context: ProfileContext = None, callback: NodeCallback = None
):
    """
    Build the inverse dark matter mass profile of ``cluster``.

    This is the first stage of the chain: the context is reset, releasing every profile built for the previous
    cluster.

    Parameters
    ----------
    cluster : ClusterDescriptor
        The cluster.
    context : ProfileContext, optional
        The context to build on. Defaults to the calling thread's.
    callback : callable, optional
        ``callback(k, r, y)`` is invoked after each table node.
    """
    context = _resolve(context)
    context.reset(cluster)
    mylog.info("%s: building the dark matter mass profile...", cluster)

    section = cpparams.config.numerics.dark_matter_mass
    radii = log_radial_grid(float(section.r_min), cluster.parameters.boxsize / 2, _table_size())

    q = tabulate(
        lambda r: dm_mass_profile(r, cluster) / cluster.mass_dm,
        radii,
        desc=f"{cluster} DM mass",
        callback=callback,
    )
    q = _clamp(q, "dark matter mass")

    context.tables["dm_mass_inverse"] = (radii, q)
    context.bind("dm_mass_inverse", ProfileSpline.inverse(radii, q, name="inverse dark matter mass"))
    context.advance(ProfileState.DM_BUILT)
    mylog.info("%s: reached %s.", cluster, ProfileState.DM_BUILT.name)


def setup_dm_potential_profile(
    cluster: "ClusterDescriptor", *, context: ProfileContext = None, callback: NodeCallback = None
):
    """
    Dark matter potential stage. The Hernquist potential is analytic, so nothing is tabulated.

    Raises
    ------
    ProfileOrderError
        If the dark matter mass of ``cluster`` was not built on the context.
    """
    context = _resolve(context)
    context.require(cluster, ProfileState.DM_BUILT)


def setup_gas_mass_profile(
    cluster: "ClusterDescriptor", *, context: ProfileContext = None, callback: NodeCallback = None
):
    """
    Tabulate the enclosed gas mass of ``cluster`` and fit its forward and inverse splines.

    Parameters
    ----------
    cluster : ClusterDescriptor
        The cluster.
    context : ProfileContext, optional
        The context to build on. Defaults to the calling thread's.
    callback : callable, optional
        ``callback(k, r, m)`` is invoked after each table node.

    Raises
    ------
    ProfileOrderError
        If the dark matter stages of ``cluster`` were not built on the context.
    ProfileError
        If the run has no gas.
    """
    context = _resolve(context)
    context.require(cluster, ProfileState.DM_BUILT)

    if not cluster.has_gas:
        raise ProfileError(f"Cannot build gas profiles of {cluster}: the baryon fraction is zero.")

    mylog.info("%s: building the gas mass profile...", cluster)

    section = cpparams.config.numerics.gas_mass
    radii = log_radial_grid(
        float(section.r_min), float(section.r_max_factor) * cluster.r_sample, _table_size()
    )

    masses, _ = tabulate_integral(
        lambda x: 4 * np.pi * x * x * cluster_gas_density(cluster, x),
        radii,
        lambda r: (0.0, r),
        QuadratureSettings.from_config(section),
        desc=f"{cluster} gas mass",
        callback=callback,
    )
    masses = _clamp(masses, "gas mass")

    context.tables["gas_mass"] = (radii, masses)
    context.bind("gas_mass", ProfileSpline(radii, masses, name="gas mass"))
    context.bind("gas_mass_inverse", ProfileSpline.inverse(radii, masses, name="inverse gas mass"))
    context.advance(ProfileState.GAS_MASS_BUILT)
    mylog.info("%s: reached %s.", cluster, ProfileState.GAS_MASS_BUILT.name)


def setup_gas_potential_profile(
    cluster: "ClusterDescriptor", *, context: ProfileContext = None, callback: NodeCallback = None
):
    """
    Tabulate the gas potential :math:`\\Psi = -\\Phi` of ``cluster`` from its gas mass spline.

    The gauge integral runs to ``gauge_upper`` (infinite by default) with ``gauge_epsrel``; the node integrals use
    the looser ``epsrel`` of the ``gas_potential`` configuration section. Inside the first node of the gas mass
    table the enclosed mass is taken as that of a uniform sphere at the central density.

    Raises
    ------
    ProfileOrderError
        If the gas mass of ``cluster`` was not built on the context.
    """
    context = _resolve(context)
    context.require(cluster, ProfileState.GAS_MASS_BUILT)
    mylog.info("%s: building the gas potential profile...", cluster)

    section = cpparams.config.numerics.gas_potential
    G = cluster.parameters.gravitational_constant
    r_first = context.tables["gas_mass"][0][1]
    central = 4 * np.pi / 3 * G * cluster_gas_density(cluster, 0.0)

    def integrand(x):
        # M(<x) -> 4/3 pi rho(0) x**3 inside the first gas mass node.
        if x < r_first:
            return central * x
        return G * gas_mass_profile(x, cluster, context=context) / (x * x)

    settings = QuadratureSettings.from_config(section)
    gauge = integrate_quad(
        integrand,
        0.0,
        float(section.gauge_upper),
        *settings._replace(epsrel=float(section.gauge_epsrel)),
        warn=False,
    )

    if not gauge.converged:
        mylog.warning(
            "%s: the potential gauge integral did not converge (error %.3e on %.6e).",
            cluster,
            gauge.error,
            gauge.value,
        )

    radii = log_radial_grid(
        float(section.r_min), float(section.r_max_factor) * cluster.r_sample, _table_size()
    )
    inner, _ = tabulate_integral(
        integrand,
        radii,
        lambda r: (0.0, r),
        settings,
        desc=f"{cluster} gas potential",
    )

    psi = gauge.value - inner
    psi = _clamp(psi, "gas potential", decreasing=True)
    _report(callback, radii, psi)

    context.tables["gas_potential"] = (radii, psi)
    context.bind(
        "gas_potential",
        ProfileSpline(radii, psi, extrapolation="keplerian", x_max=cluster.r_sample, name="gas potential"),
    )
    context.advance(ProfileState.GAS_POTENTIAL_BUILT)
    mylog.info("%s: reached %s.", cluster, ProfileState.GAS_POTENTIAL_BUILT.name)


def setup_internal_energy_profile(
    cluster: "ClusterDescriptor", *, context: ProfileContext = None, callback: NodeCallback = None
):
    """
    Tabulate the specific internal energy of the gas of ``cluster`` in hydrostatic equilibrium.

    The outer boundary, where the pressure vanishes, is :math:`\\sqrt{3}` times the box size. If ``no_rcut_in_t``
    is set, the gas density in the integral uses ``no_rcut_radius`` in place of the cluster's cutoff radius. The
    innermost node copies its neighbour.

    Raises
    ------
    ProfileOrderError
        If the gas potential of ``cluster`` was not built on the context.
    """
    context = _resolve(context)
    context.require(cluster, ProfileState.GAS_POTENTIAL_BUILT)
    mylog.info("%s: building the internal energy profile...", cluster)

    params = cluster.parameters
    section = cpparams.config.numerics.internal_energy
    r_max = np.sqrt(3) * params.boxsize
    rcut = params.no_rcut_radius if params.no_rcut_in_t else None

    def integrand(x):
        m = gas_mass_profile(x, cluster, context=context) + dm_mass_profile(x, cluster)
        return cluster_gas_density(cluster, x, rcut=rcut) * m / (x * x)

    radii = log_radial_grid(float(section.r_min), r_max, _table_size())
    u, _ = tabulate_integral(
        integrand,
        radii,
        lambda r: (r, r_max),
        QuadratureSettings.from_config(section),
        desc=f"{cluster} internal energy",
    )

    rho = cluster_gas_density(cluster, radii[1:], rcut=rcut)
    u[1:] *= params.gravitational_constant / ((params.adiabatic_index - 1) * rho)
    u[0] = u[1]

    _report(callback, radii, u)

    context.tables["internal_energy"] = (radii, u)
    context.bind("internal_energy", ProfileSpline(radii, u, name="internal energy"))
    context.advance(ProfileState.ENERGY_BUILT)
    mylog.info("%s: reached %s.", cluster, ProfileState.ENERGY_BUILT.name)


def setup_profiles(
    cluster: "ClusterDescriptor", *, context: ProfileContext = None, callback: NodeCallback = None
) -> ProfileContext:
    """
    Build every profile of ``cluster`` on ``context``.

    Must be called once per cluster before any of the tabulated profiles are evaluated. Profiles previously built
    on the same context (for any cluster) are released.

    Parameters
    ----------
    cluster : ClusterDescriptor
        The cluster.
    context : ProfileContext, optional
        The context to build on. Defaults to the calling thread's.
    callback : callable, optional
        ``callback(k, r, y)`` is forwarded to every stage.

    Returns
    -------
    ProfileContext
        The context holding the profiles.
    """
    context = _resolve(context)
    mylog.info("Building profiles of %s [%s]...", cluster, context.name)

    setup_dm_mass_profile(cluster, context=context, callback=callback)
    setup_dm_potential_profile(cluster, context=context, callback=callback)

    if cluster.has_gas:
        setup_gas_mass_profile(cluster, context=context, callback=callback)
        setup_gas_potential_profile(cluster, context=context, callback=callback)
        setup_internal_energy_profile(cluster, context=context, callback=callback)
    else:
        mylog.info("%s: baryon fraction is zero, skipping the gas profiles.", cluster)

    mylog.info("Built profiles of %s [%s].", cluster, context.name)

    return context


# ============================================================================================================== #
# Evaluation                                                                                                     #
# ============================================================================================================== #
def inverted_dm_mass_profile(
    q: NumericInput, cluster: "ClusterDescriptor", *, context: ProfileContext = None
) -> NumericInput:
    """
    Radius enclosing the dark matter mass fraction ``q`` of ``cluster``.

    ``q`` is the mass in units of the cluster's total dark matter mass; queries outside the table are clipped.
    """
    return _resolve(context).spline("dm_mass_inverse", cluster)(q)


def gas_mass_profile(
    r: NumericInput, cluster: "ClusterDescriptor", *, context: ProfileContext = None
) -> NumericInput:
    """Enclosed gas mass of ``cluster``. Radii beyond ``R_Sample`` are clamped to it."""
    return _resolve(context).spline("gas_mass", cluster)(np.minimum(r, cluster.r_sample))


def inverted_gas_mass_profile(m: NumericInput, *, context: ProfileContext = None) -> NumericInput:
    """Radius enclosing the gas mass ``m`` of the cluster last built on the context."""
    return _resolve(context)["gas_mass_inverse"](m)


def gas_potential_profile(
    cluster: "ClusterDescriptor", r: NumericInput, *, context: ProfileContext = None
) -> NumericInput:
    """
    Tabulated gas potential :math:`\\Psi = -\\Phi` of ``cluster``.

    Beyond ``R_Sample`` the value falls off as :math:`\\Psi(R_{\\rm Sample}) R_{\\rm Sample} / r`.
    """
    return _resolve(context).spline("gas_potential", cluster)(r)


def internal_energy_profile(
    cluster: "ClusterDescriptor", r: NumericInput, *, context: ProfileContext = None
) -> NumericInput:
    """Tabulated specific internal energy of the gas of ``cluster`` in ``kpc**2/Myr**2``."""
    return _resolve(context).spline("internal_energy", cluster)(r)


def temperature_profile(
    cluster: "ClusterDescriptor", r: NumericInput, *, context: ProfileContext = None
) -> "unyt_array":
    """Gas temperature of ``cluster`` in keV, from the tabulated internal energy."""
    u = internal_energy_profile(cluster, r, context=context)

    return internal_energy_to_temperature(u, cluster.parameters.adiabatic_index)

"""
Tests for the tabulated profile pipelines.

Most tests read from the session-scoped contexts built in ``conftest.py``; tests which exercise the setup order build
on their own contexts.
"""
import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy.integrate import quad

from cluster_profiles.cluster import ClusterDescriptor
from cluster_profiles.context import ProfileContext, ProfileState
from cluster_profiles.pipelines import (
    gas_mass_profile,
    gas_potential_profile,
    internal_energy_profile,
    inverted_dm_mass_profile,
    inverted_gas_mass_profile,
    setup_dm_mass_profile,
    setup_dm_potential_profile,
    setup_gas_mass_profile,
    setup_gas_potential_profile,
    setup_internal_energy_profile,
    setup_profiles,
    temperature_profile,
)
from cluster_profiles.profiles import (
    cluster_gas_density,
    dm_mass_profile,
    gas_potential_profile_23,
    mass_profile_23,
)
from cluster_profiles.utilities.config import cpparams
from cluster_profiles.utilities.exceptions import (
    ProfileError,
    ProfileNotBuiltError,
    ProfileOrderError,
)


# ------------------------------------------------------------------------------------------------------------------ #
# Dark matter                                                                                                        #
# ------------------------------------------------------------------------------------------------------------------ #
def test_dm_state(built_dm_context, nfw_cluster):
    assert built_dm_context.state == ProfileState.DM_BUILT
    assert "dm_mass_inverse" in built_dm_context
    assert "gas_mass" not in built_dm_context


def test_dm_table(built_dm_context, nfw_cluster):
    radii, q = built_dm_context.tables["dm_mass_inverse"]

    assert radii.size == cpparams.config.numerics.table_size
    assert radii[0] == 0 and q[0] == 0
    assert radii[-1] == pytest.approx(nfw_cluster.parameters.boxsize / 2)
    assert np.all(np.diff(q) > 0)
    assert_allclose(q[1:], dm_mass_profile(radii[1:], nfw_cluster) / nfw_cluster.mass_dm, rtol=1e-9)


def test_inverted_dm_mass_round_trip(built_dm_context, nfw_cluster):
    r = np.geomspace(1, 5000, 200)
    q = dm_mass_profile(r, nfw_cluster) / nfw_cluster.mass_dm

    assert_allclose(inverted_dm_mass_profile(q, nfw_cluster, context=built_dm_context), r, rtol=1e-3)

    scalar = [inverted_dm_mass_profile(_q, nfw_cluster, context=built_dm_context) for _q in q]
    assert_allclose(scalar, r, rtol=1e-3)


def test_dm_only_skips_gas(built_dm_context, nfw_cluster):
    with pytest.raises(ProfileNotBuiltError):
        gas_mass_profile(100.0, nfw_cluster, context=built_dm_context)

    context = ProfileContext()
    setup_dm_mass_profile(nfw_cluster, context=context)

    with pytest.raises(ProfileError, match="baryon fraction"):
        setup_gas_mass_profile(nfw_cluster, context=context)


def test_dm_callback(nfw_cluster):
    nodes = []
    setup_dm_mass_profile(nfw_cluster, context=ProfileContext(), callback=lambda k, r, q: nodes.append(k))

    assert nodes == list(range(1, cpparams.config.numerics.table_size))


# ------------------------------------------------------------------------------------------------------------------ #
# Gas mass                                                                                                           #
# ------------------------------------------------------------------------------------------------------------------ #
def test_gas_state(built_gas_context):
    assert built_gas_context.state == ProfileState.ENERGY_BUILT

    for kind in ["dm_mass_inverse", "gas_mass", "gas_mass_inverse", "gas_potential", "internal_energy"]:
        assert kind in built_gas_context


def test_gas_mass_table(built_gas_context, gas_cluster):
    radii, m = built_gas_context.tables["gas_mass"]

    assert radii[0] == 0 and m[0] == 0
    assert radii[-1] == pytest.approx(1.1 * gas_cluster.r_sample)
    assert np.all(np.diff(m) >= 0)


def test_gas_mass_at_origin(built_gas_context, gas_cluster):
    assert gas_mass_profile(0.0, gas_cluster, context=built_gas_context) == 0.0


def test_gas_mass_matches_closed_form(built_gas_context, gas_cluster):
    r = np.geomspace(1, 1000, 64)

    assert_allclose(
        gas_mass_profile(r, gas_cluster, context=built_gas_context),
        mass_profile_23(r, gas_cluster),
        rtol=1e-4,
    )


def test_gas_mass_clamped_to_sampling_radius(built_gas_context, gas_cluster):
    at_sample = gas_mass_profile(gas_cluster.r_sample, gas_cluster, context=built_gas_context)

    assert gas_mass_profile(2 * gas_cluster.r_sample, gas_cluster, context=built_gas_context) == at_sample
    assert_allclose(
        gas_mass_profile(np.array([1e5, 1e7]), gas_cluster, context=built_gas_context), at_sample
    )


def test_inverted_gas_mass_round_trip(built_gas_context, gas_cluster):
    r = np.geomspace(1, gas_cluster.rcut, 100)
    m = mass_profile_23(r, gas_cluster)

    assert_allclose(inverted_gas_mass_profile(m, context=built_gas_context), r, rtol=1e-3)


def test_gas_mass_scenario(gas_parameters):
    """Beta = 0.667 cluster: zero mass at the center, within 5% of the beta = 2/3 mass at the cutoff."""
    cluster = ClusterDescriptor(
        index=2,
        Mass_DM=1e15,
        Rs=300,
        Rho0_nfw=2e6,
        A_hernq=600,
        Rho0=3e5,
        Rcore=100,
        Beta=0.667,
        Rcut=2000,
        Have_Cuspy=False,
        R_Sample=5000,
        parameters=gas_parameters,
    )
    context = ProfileContext()
    setup_dm_mass_profile(cluster, context=context)
    setup_dm_potential_profile(cluster, context=context)
    setup_gas_mass_profile(cluster, context=context)

    assert context.state == ProfileState.GAS_MASS_BUILT
    assert gas_mass_profile(0.0, cluster, context=context) == 0.0
    assert gas_mass_profile(cluster.rcut, cluster, context=context) == pytest.approx(
        mass_profile_23(cluster.rcut, cluster), rel=0.05
    )


# ------------------------------------------------------------------------------------------------------------------ #
# Gas potential                                                                                                      #
# ------------------------------------------------------------------------------------------------------------------ #
def test_gas_potential_table(built_gas_context, gas_cluster):
    radii, psi = built_gas_context.tables["gas_potential"]

    assert radii[0] == 0
    assert radii[1] > 1.0
    assert np.all(np.diff(psi) <= 0)
    assert np.all(psi > 0)


def test_gas_potential_non_increasing(built_gas_context, gas_cluster):
    r = np.geomspace(1, 1e6, 2000)
    psi = gas_potential_profile(gas_cluster, r, context=built_gas_context)

    assert np.all(np.diff(psi) <= 1e-6 * psi[0])


def test_gas_potential_vanishes_at_infinity(built_gas_context, gas_cluster):
    psi_0 = gas_potential_profile(gas_cluster, 0.0, context=built_gas_context)

    assert gas_potential_profile(gas_cluster, 1e10, context=built_gas_context) < 1e-5 * psi_0


def test_gas_potential_keplerian_continuity(built_gas_context, gas_cluster):
    r_sample, eps = gas_cluster.r_sample, 1e-3
    inside = gas_potential_profile(gas_cluster, r_sample - eps, context=built_gas_context)
    outside = gas_potential_profile(gas_cluster, r_sample + eps, context=built_gas_context)

    assert outside == pytest.approx(inside, rel=1e-2)
    assert gas_potential_profile(gas_cluster, 4 * r_sample, context=built_gas_context) == pytest.approx(
        outside / 4, rel=1e-6
    )


def test_gas_potential_matches_closed_form(built_gas_context, gas_cluster):
    r = np.geomspace(10, 1000, 32)

    assert_allclose(
        gas_potential_profile(gas_cluster, r, context=built_gas_context),
        gas_potential_profile_23(gas_cluster, r),
        rtol=1e-2,
    )


# ------------------------------------------------------------------------------------------------------------------ #
# Internal energy                                                                                                    #
# ------------------------------------------------------------------------------------------------------------------ #
def test_internal_energy_table(built_gas_context, gas_cluster):
    radii, u = built_gas_context.tables["internal_energy"]

    assert radii[-1] == pytest.approx(np.sqrt(3) * gas_cluster.parameters.boxsize)
    assert u[0] == u[1]
    assert u[-1] == 0
    assert np.all(u[:-1] > 0)


def test_internal_energy_hydrostatic(built_gas_context, gas_cluster):
    """d[(gamma - 1) rho u]/dr = -G rho (M_gas + M_dm) / r**2."""
    params = gas_cluster.parameters
    G, gamma = params.gravitational_constant, params.adiabatic_index

    def pressure(r):
        u = internal_energy_profile(gas_cluster, r, context=built_gas_context)
        return (gamma - 1) * cluster_gas_density(gas_cluster, r) * u

    r = np.geomspace(50, 2000, 16)
    h = 1e-2 * r
    dpdr = (pressure(r + h) - pressure(r - h)) / (2 * h)

    mass = gas_mass_profile(r, gas_cluster, context=built_gas_context) + dm_mass_profile(r, gas_cluster)
    expected = -G * cluster_gas_density(gas_cluster, r) * mass / r**2

    assert_allclose(dpdr, expected, rtol=1e-2)


def test_temperature_profile(built_gas_context, gas_cluster):
    kT = temperature_profile(gas_cluster, np.array([100.0, 1000.0]), context=built_gas_context)

    assert str(kT.units) == "keV"
    assert np.all(kT.d > 0.1) and np.all(kT.d < 100)


# ------------------------------------------------------------------------------------------------------------------ #
# Ordering                                                                                                           #
# ------------------------------------------------------------------------------------------------------------------ #
def test_setup_order_enforced(gas_cluster):
    context = ProfileContext()

    with pytest.raises(ProfileOrderError):
        setup_dm_potential_profile(gas_cluster, context=context)
    with pytest.raises(ProfileOrderError):
        setup_gas_mass_profile(gas_cluster, context=context)

    setup_dm_mass_profile(gas_cluster, context=context)

    with pytest.raises(ProfileOrderError):
        setup_gas_potential_profile(gas_cluster, context=context)
    with pytest.raises(ProfileOrderError):
        setup_internal_energy_profile(gas_cluster, context=context)


def test_unbuilt_profiles_raise(gas_cluster, nfw_cluster, built_dm_context):
    context = ProfileContext()

    with pytest.raises(ProfileNotBuiltError):
        inverted_dm_mass_profile(0.5, gas_cluster, context=context)
    with pytest.raises(ProfileNotBuiltError):
        inverted_gas_mass_profile(1e10, context=context)

    # profiles built for another cluster
    with pytest.raises(ProfileNotBuiltError):
        inverted_dm_mass_profile(0.5, gas_cluster, context=built_dm_context)


def test_rebuild_releases_previous_cluster(nfw_cluster, gas_cluster):
    context = ProfileContext()
    setup_dm_mass_profile(gas_cluster, context=context)
    old = context["dm_mass_inverse"]

    setup_profiles(nfw_cluster, context=context)

    assert context.holds(nfw_cluster)
    assert len(old) == 0
    assert context["dm_mass_inverse"] is not old


# ------------------------------------------------------------------------------------------------------------------ #
# Cool cores and the energy cutoff                                                                                   #
# ------------------------------------------------------------------------------------------------------------------ #
@pytest.fixture(scope="module")
def cool_core_cluster(gas_cluster):
    params = gas_cluster.parameters.model_copy(update=dict(double_beta_cool_cores=True))
    return gas_cluster.model_copy(update=dict(index=3, have_cuspy=True, parameters=params))


@pytest.fixture(scope="module")
def cool_core_context(cool_core_cluster):
    return setup_profiles(cool_core_cluster, context=ProfileContext(name="cool-core"))


@pytest.fixture(scope="module")
def no_rcut_cluster(gas_cluster):
    params = gas_cluster.parameters.model_copy(update=dict(no_rcut_in_t=True))
    return gas_cluster.model_copy(update=dict(index=4, parameters=params))


@pytest.fixture(scope="module")
def no_rcut_context(no_rcut_cluster):
    return setup_profiles(no_rcut_cluster, context=ProfileContext(name="no-rcut"))


def test_cool_core_build(cool_core_context, cool_core_cluster):
    assert cool_core_cluster.cool_core_enabled
    assert cool_core_context.state == ProfileState.ENERGY_BUILT

    _, psi = cool_core_context.tables["gas_potential"]
    _, u = cool_core_context.tables["internal_energy"]

    assert np.all(np.isfinite(psi)) and np.all(psi > 0)
    assert np.all(u[:-1] > 0)


def test_cool_core_gas_mass(cool_core_context, cool_core_cluster):
    r = np.geomspace(1, 1000, 64)
    m = mass_profile_23(r, cool_core_cluster)

    assert_allclose(gas_mass_profile(r, cool_core_cluster, context=cool_core_context), m, rtol=1e-4)
    assert_allclose(inverted_gas_mass_profile(m, context=cool_core_context), r, rtol=1e-3)


def test_cool_core_potential(cool_core_context, cool_core_cluster):
    r = np.geomspace(10, 1000, 32)

    assert_allclose(
        gas_potential_profile(cool_core_cluster, r, context=cool_core_context),
        gas_potential_profile_23(cool_core_cluster, r),
        rtol=1e-2,
    )


def test_cool_core_hydrostatic(cool_core_context, cool_core_cluster):
    params = cool_core_cluster.parameters
    G, gamma = params.gravitational_constant, params.adiabatic_index

    def pressure(r):
        u = internal_energy_profile(cool_core_cluster, r, context=cool_core_context)
        return (gamma - 1) * cluster_gas_density(cool_core_cluster, r) * u

    r = np.geomspace(50, 2000, 16)
    h = 1e-2 * r
    dpdr = (pressure(r + h) - pressure(r - h)) / (2 * h)

    mass = gas_mass_profile(r, cool_core_cluster, context=cool_core_context) + dm_mass_profile(r, cool_core_cluster)
    expected = -G * cluster_gas_density(cool_core_cluster, r) * mass / r**2

    assert_allclose(dpdr, expected, rtol=1e-2)


def _hydrostatic_energy(cluster, context, r, rcut):
    params = cluster.parameters
    G, gamma = params.gravitational_constant, params.adiabatic_index

    def integrand(x):
        m = gas_mass_profile(x, cluster, context=context) + dm_mass_profile(x, cluster)
        return cluster_gas_density(cluster, x, rcut=rcut) * m / x**2

    value, _ = quad(integrand, r, np.sqrt(3) * params.boxsize, epsrel=1e-9, limit=500)
    return G * value / ((gamma - 1) * cluster_gas_density(cluster, r, rcut=rcut))


@pytest.mark.parametrize("r", [500.0, 3000.0])
def test_energy_uses_surrogate_cutoff(no_rcut_context, no_rcut_cluster, r):
    u = internal_energy_profile(no_rcut_cluster, r, context=no_rcut_context)
    expected = _hydrostatic_energy(no_rcut_cluster, no_rcut_context, r, no_rcut_cluster.parameters.no_rcut_radius)

    assert u == pytest.approx(expected, rel=1e-3)


def test_energy_surrogate_differs_beyond_cutoff(no_rcut_context, no_rcut_cluster):
    r = 1.5 * no_rcut_cluster.rcut
    u = internal_energy_profile(no_rcut_cluster, r, context=no_rcut_context)

    assert u != pytest.approx(_hydrostatic_energy(no_rcut_cluster, no_rcut_context, r, no_rcut_cluster.rcut), rel=0.1)

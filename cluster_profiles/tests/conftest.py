"""Pytest configuration module for the `cluster_profiles` package.

Overview
--------
This configuration file provides the fixtures shared by the test modules:

- **Parameters**: run-wide :py:class:`~cluster_profiles.cluster.SimulationParameters` with and without gas.
- **Clusters**: an NFW halo without gas (``nfw_cluster``) and a cluster with a :math:`\\beta = 2/3` gas atmosphere
  (``gas_cluster``), the latter mirroring the standard test scenario (``Rcore=100``, ``Rcut=2000``, baryon fraction
  ``0.17``).
- **Built contexts**: building the gas profiles takes a few hundred thousand quadrature evaluations, so the built
  contexts are session scoped and shared by every test that only reads from them. Tests which mutate a context build
  their own.

Progress bars are disabled for the whole session.
"""
import pytest

from cluster_profiles.cluster import ClusterDescriptor, SimulationParameters
from cluster_profiles.context import ProfileContext
from cluster_profiles.pipelines import setup_profiles
from cluster_profiles.utilities.config import cpparams

# Disable progress bars during tests to improve compatibility with CI logs.
cpparams.config.system.preferences.disable_progress_bars = True


@pytest.fixture(scope="session")
def gas_parameters() -> SimulationParameters:
    """Run-wide parameters with a cosmic baryon fraction and no cool cores."""
    return SimulationParameters(
        boxsize=20000, baryon_fraction=0.17, double_beta_cool_cores=False
    )


@pytest.fixture(scope="session")
def dm_parameters() -> SimulationParameters:
    """Run-wide parameters of a dark matter only run."""
    return SimulationParameters(boxsize=20000, baryon_fraction=0.0)


@pytest.fixture(scope="session")
def nfw_cluster(dm_parameters) -> ClusterDescriptor:
    return ClusterDescriptor(
        index=0,
        Mass_DM=1.0e15,
        Rs=300,
        Rho0_nfw=2.0e6,
        A_hernq=600,
        parameters=dm_parameters,
    )


@pytest.fixture(scope="session")
def gas_cluster(gas_parameters) -> ClusterDescriptor:
    return ClusterDescriptor(
        index=1,
        Mass_DM=1.0e15,
        Rs=300,
        Rho0_nfw=2.0e6,
        A_hernq=600,
        Rho0=3.0e5,
        Rcore=100,
        Beta=2.0 / 3.0,
        Rcut=2000,
        Have_Cuspy=False,
        R_Sample=5000,
        parameters=gas_parameters,
    )


@pytest.fixture(scope="session")
def built_gas_context(gas_cluster) -> ProfileContext:
    """A context holding every profile of ``gas_cluster``."""
    return setup_profiles(gas_cluster, context=ProfileContext(name="gas"))


@pytest.fixture(scope="session")
def built_dm_context(nfw_cluster) -> ProfileContext:
    """A context holding the dark matter profiles of ``nfw_cluster``."""
    return setup_profiles(nfw_cluster, context=ProfileContext(name="dm"))

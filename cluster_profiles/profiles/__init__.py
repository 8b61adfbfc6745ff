"""
Cluster Profiles Analytic Module
================================

Closed-form profiles of the cluster components:

- **Dark matter** (:py:mod:`~cluster_profiles.profiles.dark_matter`): NFW density and mass, Hernquist density,
  mass and potential.
- **Gas** (:py:mod:`~cluster_profiles.profiles.gas`): single / double beta-model density with cutoff, exact
  :math:`\\beta = 2/3` mass and potential.
- **Internal energy** (:py:mod:`~cluster_profiles.profiles.energy`): the analytic hydrostatic solution for a Hernquist
  halo and a :math:`\\beta = 2/3` atmosphere, and energy / temperature conversions.

The tabulated profiles (anything that needs numerical integration) live in :py:mod:`cluster_profiles.pipelines`.
"""
from .dark_matter import (
    dm_density_profile,
    dm_mass_profile,
    dm_potential_profile,
    hernquist_density_profile,
    hernquist_mass_profile,
)
from .energy import (
    internal_energy_profile_analytic,
    internal_energy_to_temperature,
    temperature_to_internal_energy,
)
from .gas import (
    cluster_gas_density,
    gas_density_profile,
    gas_potential_profile_23,
    mass_profile_23,
)

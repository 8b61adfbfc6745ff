from cluster_profiles.cluster import ClusterDescriptor, SimulationParameters
from cluster_profiles.context import (
    ProfileContext,
    ProfileState,
    get_context,
    release_context,
)
from cluster_profiles.parallel import process_clusters
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
    dm_density_profile,
    dm_mass_profile,
    dm_potential_profile,
    gas_density_profile,
    gas_potential_profile_23,
    hernquist_density_profile,
    hernquist_mass_profile,
    internal_energy_profile_analytic,
    internal_energy_to_temperature,
    mass_profile_23,
    temperature_to_internal_energy,
)

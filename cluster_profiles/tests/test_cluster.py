"""
Tests for the cluster descriptors and the configuration they draw defaults from.
"""
import logging
import shutil

import pytest
from pydantic import ValidationError
from unyt import unyt_quantity

from cluster_profiles.cluster import ClusterDescriptor, SimulationParameters
from cluster_profiles.utilities.config import YAMLConfiguration, config_directory, cpparams
from cluster_profiles.utilities.logging import devlog, mylog
from cluster_profiles.utilities.physics import G


def test_parameter_defaults():
    params = SimulationParameters(boxsize=10000)

    assert params.baryon_fraction == 0
    assert params.adiabatic_index == pytest.approx(5 / 3)
    assert params.double_beta_cool_cores == cpparams["cool_cores", "double_beta"]
    assert params.rho0_fac == cpparams["cool_cores.rho0_fac"]
    assert params.no_rcut_radius == cpparams.config.cool_cores.no_rcut_radius
    assert params.gravitational_constant == pytest.approx(G.to_value("kpc**3/Msun/Myr**2"))


def test_units_are_converted():
    params = SimulationParameters(boxsize=unyt_quantity(20, "Mpc"), baryon_fraction=0.1)
    cluster = ClusterDescriptor(
        Mass_DM=(2e45, "g"),
        Rs=unyt_quantity(0.3, "Mpc"),
        Rho0_nfw=unyt_quantity(1e-25, "g/cm**3"),
        A_hernq=500,
        R_Sample=(3.0856775814913673e22, "m"),
        parameters=params,
    )

    assert params.boxsize == pytest.approx(20000)
    assert cluster.rs == pytest.approx(300)
    assert cluster.mass_dm == pytest.approx(unyt_quantity(2e45, "g").to_value("Msun"))
    assert cluster.rho0_nfw == pytest.approx(unyt_quantity(1e-25, "g/cm**3").to_value("Msun/kpc**3"))
    assert cluster.r_sample == pytest.approx(1000, rel=1e-9)


def test_aliases_and_field_names():
    params = SimulationParameters(boxsize=10000)
    by_alias = ClusterDescriptor(Mass_DM=1e15, Rs=300, Rho0_nfw=1e6, A_hernq=500, Have_Cuspy=True, parameters=params)
    by_name = ClusterDescriptor(mass_dm=1e15, rs=300, rho0_nfw=1e6, a_hernq=500, have_cuspy=True, parameters=params)

    assert by_alias == by_name
    assert str(by_alias) == "<Cluster 0>"
    assert not by_alias.has_gas
    assert not by_alias.cool_core_enabled


def test_descriptors_are_frozen():
    params = SimulationParameters(boxsize=10000)
    cluster = ClusterDescriptor(Mass_DM=1e15, Rs=300, Rho0_nfw=1e6, A_hernq=500, parameters=params)

    with pytest.raises(ValidationError):
        cluster.rs = 10.0
    with pytest.raises(ValidationError):
        params.boxsize = 10.0


@pytest.mark.parametrize(
    "overrides",
    [
        dict(Rs=-1.0),
        dict(Mass_DM=0.0),
        dict(Rcore=0.0),
        dict(Rho0=-1.0),
    ],
)
def test_invalid_descriptors(overrides):
    params = SimulationParameters(boxsize=10000)
    kwargs = dict(Mass_DM=1e15, Rs=300, Rho0_nfw=1e6, A_hernq=500, parameters=params)
    kwargs.update(overrides)

    with pytest.raises(ValidationError):
        ClusterDescriptor(**kwargs)


def test_invalid_parameters():
    with pytest.raises(ValidationError):
        SimulationParameters(boxsize=10000, baryon_fraction=1.5)
    with pytest.raises(ValidationError):
        SimulationParameters(boxsize=10000, adiabatic_index=1.0)


def test_configuration_reload(tmp_path):
    path = tmp_path / "config.yaml"
    shutil.copy(config_directory, path)

    config = YAMLConfiguration(path)
    assert config["numerics", "table_size"] == cpparams.config.numerics.table_size == 1024
    assert config.config.numerics.gas_potential.gauge_upper == float("inf")

    path.write_text(path.read_text().replace("table_size: 1024", "table_size: 64"))
    assert config["numerics.table_size"] == 1024

    config.reload()

    assert config["numerics.table_size"] == 64
    assert cpparams.config.numerics.table_size == 1024


def test_missing_configuration(tmp_path):
    with pytest.raises(FileNotFoundError):
        YAMLConfiguration(tmp_path / "missing.yaml").config


def test_loggers_follow_configuration():
    assert mylog.name == "cluster_profiles" and not mylog.disabled
    assert devlog.disabled is not bool(cpparams["logging.devlog.enabled"])
    assert mylog.level == logging.getLevelName(cpparams["logging.mylog.level"])

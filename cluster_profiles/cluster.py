"""
Cluster descriptors.

The profile engine never reads cluster parameters from a parameter file itself; the caller hands it one
:py:class:`ClusterDescriptor` per cluster together with the run-wide :py:class:`SimulationParameters`. Both are
frozen :py:mod:`pydantic` models: they are validated once at construction and read-only afterwards, so they can be
shared freely between worker threads.

Dimensional fields accept plain floats (interpreted in code units: ``kpc``, ``Msun``, ``Myr``), :py:class:`unyt.unyt_quantity`
instances, or ``(value, unit)`` tuples. Field aliases follow the upper-camel names used by the simulation's parameter
tables (``Rs``, ``Rho0_nfw``, ``R_Sample``, ...), so those tables can be passed through unchanged.

Examples
--------
.. code-block:: python

    from unyt import unyt_quantity
    from cluster_profiles.cluster import ClusterDescriptor, SimulationParameters

    params = SimulationParameters(boxsize=40000, baryon_fraction=0.17)
    cluster = ClusterDescriptor(
        Mass_DM=1e15, Rs=unyt_quantity(0.2, "Mpc"), Rho0_nfw=1e6, A_hernq=500,
        Rho0=1e5, Rcore=100, Beta=2/3, Rcut=2000, R_Sample=10000,
        parameters=params,
    )
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator

from cluster_profiles.utilities.config import cpparams
from cluster_profiles.utilities.physics import G, adiabatic_index
from cluster_profiles.utilities.types import to_code_units

_LENGTH_FIELDS = ("boxsize", "rs", "a_hernq", "rcore", "rcut", "r_sample", "no_rcut_radius")
_MASS_FIELDS = ("mass_dm",)
_DENSITY_FIELDS = ("rho0_nfw", "rho0")


def _coerce_units(value, field_name):
    # Pydantic hands over the raw input; quantities are reduced to floats in code units.
    if field_name in _LENGTH_FIELDS:
        return to_code_units(value, "kpc")
    elif field_name in _MASS_FIELDS:
        return to_code_units(value, "Msun")
    elif field_name in _DENSITY_FIELDS:
        return to_code_units(value, "Msun/kpc**3")
    return value


class SimulationParameters(BaseModel):
    """
    Run-wide parameters shared by every cluster.

    Attributes
    ----------
    boxsize : float
        Simulation box size. Sets the outer bound of the dark matter and internal energy tables.
    baryon_fraction : float
        Cosmic baryon fraction. Gas profiles are only built when this is positive.
    adiabatic_index : float
        Adiabatic index of the gas.
    double_beta_cool_cores : bool
        Add the cool-core beta component to clusters flagged as cuspy.
    rho0_fac, rc_fac : float
        Cool-core density and core radius scale factors (``rho0_cc = rho0 * rho0_fac``, ``rc_cc = rc / rc_fac``).
    no_rcut_in_t : bool
        Replace the cutoff radius by ``no_rcut_radius`` in the internal energy integral.
    gravitational_constant : float
        Newton's constant in code units.
    """

    model_config = ConfigDict(frozen=True)

    boxsize: float = Field(gt=0)
    baryon_fraction: float = Field(default=0.0, ge=0, le=1)
    adiabatic_index: float = Field(default_factory=lambda: adiabatic_index, gt=1)
    double_beta_cool_cores: bool = Field(
        default_factory=lambda: bool(cpparams.config.cool_cores.double_beta)
    )
    rho0_fac: float = Field(
        default_factory=lambda: float(cpparams.config.cool_cores.rho0_fac), gt=0
    )
    rc_fac: float = Field(
        default_factory=lambda: float(cpparams.config.cool_cores.rc_fac), gt=0
    )
    no_rcut_in_t: bool = Field(
        default_factory=lambda: bool(cpparams.config.cool_cores.no_rcut_in_t)
    )
    no_rcut_radius: float = Field(
        default_factory=lambda: float(cpparams.config.cool_cores.no_rcut_radius), gt=0
    )
    gravitational_constant: float = Field(default_factory=lambda: float(G.v), gt=0)

    @field_validator("boxsize", "no_rcut_radius", mode="before")
    @classmethod
    def _validate_units(cls, value, info):
        return _coerce_units(value, info.field_name)


class ClusterDescriptor(BaseModel):
    """
    Scalar parameters of a single cluster: an NFW / Hernquist dark matter halo and an optional
    (double) beta-model gas atmosphere.

    Attributes
    ----------
    index : int
        Position of the cluster in the caller's table. Only used to label log output.
    mass_dm : float
        Total dark matter mass. Normalises the inverse dark matter mass profile and sets the
        Hernquist potential.
    rs, rho0_nfw : float
        NFW scale radius and characteristic density.
    a_hernq : float
        Hernquist scale radius.
    rho0, rcore, beta, rcut : float
        Central density, core radius, beta exponent and cutoff radius of the gas.
    have_cuspy : bool
        The cluster has a cool core (second beta component).
    r_sample : float
        Outer radius up to which particles are sampled and gas tables are valid.
    parameters : SimulationParameters
        The run-wide parameters.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    index: int = 0
    mass_dm: float = Field(alias="Mass_DM", gt=0)
    rs: float = Field(alias="Rs", gt=0)
    rho0_nfw: float = Field(alias="Rho0_nfw", gt=0)
    a_hernq: float = Field(alias="A_hernq", gt=0)
    rho0: float = Field(default=0.0, alias="Rho0", ge=0)
    rcore: float = Field(default=1.0, alias="Rcore", gt=0)
    beta: float = Field(default=2.0 / 3.0, alias="Beta", gt=0)
    rcut: float = Field(default=1.0e5, alias="Rcut", gt=0)
    have_cuspy: bool = Field(default=False, alias="Have_Cuspy")
    r_sample: float = Field(default=1.0e3, alias="R_Sample", gt=0)
    parameters: SimulationParameters

    @field_validator(*_LENGTH_FIELDS[1:-1], *_MASS_FIELDS, *_DENSITY_FIELDS, mode="before")
    @classmethod
    def _validate_units(cls, value, info):
        return _coerce_units(value, info.field_name)

    @property
    def has_gas(self) -> bool:
        """``True`` if the gas pipelines run for this cluster."""
        return self.parameters.baryon_fraction > 0

    @property
    def cool_core_enabled(self) -> bool:
        """``True`` if the cool-core density component applies to this cluster."""
        return self.parameters.double_beta_cool_cores and self.have_cuspy

    def __str__(self):
        return f"<Cluster {self.index}>"

"""Utilities module for physics routines and constants."""
from unyt import physical_constants as pc
from unyt import unyt_quantity

from cluster_profiles.utilities.config import cpparams

mp: unyt_quantity = (pc.mp).to("Msun")
#: :py:class:`unyt.unyt_quantity`: Proton mass in solar masses.
G: unyt_quantity = (pc.G).to("kpc**3/Msun/Myr**2")
#: :py:class:`unyt.unyt_quantity`: Newton's gravitational constant in galactic units.
kboltz: unyt_quantity = (pc.kboltz).to("Msun*kpc**2/Myr**2/K")
#: :py:class:`unyt.unyt_quantity`: Boltzmann's constant
X_H: float = cpparams.config.physics.hydrogen_abundance
""" float: The cosmological hydrogen abundance.

The adopted value for :math:`X_H` may be changed in the ``cluster_profiles`` configuration. Default is 0.76.
"""
mu: float = 1.0 / (2.0 * X_H + 0.75 * (1.0 - X_H))
r""" float: The mean molecular mass given the cosmological hydrogen abundance :math:`X_H` and ignoring metals.

.. math::

    \mu = \frac{1}{\sum_j (j+1)X_j/A_j}

"""
adiabatic_index: float = float(cpparams.config.physics.adiabatic_index)
""" float: The default adiabatic index of the intracluster gas."""

"""Cluster profiles configuration management / utilities."""
import operator
import os
import pathlib as pt
from functools import reduce
from typing import Any, Iterable, Mapping

import ruamel.yaml

from cluster_profiles.utilities.types import AttrDict

config_directory = os.path.join(pt.Path(__file__).parents[1], "bin", "config.yaml")
""" str: The system directory where the ``cluster_profiles`` configuration is stored.

The underlying ``.yaml`` file may be altered by the user to set configuration values.
"""

yaml = ruamel.yaml.YAML()


class YAMLConfiguration:
    """Generic YAML configuration class."""

    def __init__(self, path: pt.Path | str):
        self.path: pt.Path = pt.Path(path)
        # :py:class:`pathlib.Path`: The path to the underlying yaml file.
        self._config: AttrDict | None = None

    def __getitem__(self, item: str | tuple[str, ...]) -> Any:
        if isinstance(item, str):
            item = item.split(".")

        return getFromDict(self.config, item)

    @property
    def config(self) -> AttrDict:
        if self._config is None:
            self._config = AttrDict(self.load())

        return self._config

    @classmethod
    def load_from_path(cls, path: pt.Path) -> dict:
        """Read the configuration dictionary from disk."""
        try:
            with open(path, "r") as cf:
                return yaml.load(cf)

        except FileNotFoundError as er:
            raise FileNotFoundError(
                f"Couldn't find the configuration file! Is it at {config_directory}? Error = {er.__repr__()}"
            )

    def load(self) -> dict:
        return self.__class__.load_from_path(self.path)

    def reload(self):
        """Reload the configuration file from disk."""
        self._config = None


cpparams: YAMLConfiguration = YAMLConfiguration(config_directory)
""":py:class:`YAMLConfiguration`: The ``cluster_profiles`` configuration object."""


def getFromDict(dataDict: Mapping, mapList: Iterable[str]) -> Any:
    """Fetch an object from a nested dictionary using a list of keys.

    Parameters
    ----------
    dataDict: dict
        The data dictionary to search.
    mapList: list
        The list of keys to follow.

    Returns
    -------
    Any
        The output value.
    """
    return reduce(operator.getitem, mapList, dataDict)

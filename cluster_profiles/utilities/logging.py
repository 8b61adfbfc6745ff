"""
Logging configuration for :py:mod:`cluster_profiles`.

Two loggers are configured from the ``logging`` section of the configuration:

- ``mylog`` reports the progress of the profile builds (one line per stage and cluster).
- ``devlog`` reports quadrature statistics and table clamping. It is disabled unless ``logging.devlog.enabled`` is
  set; its default format carries the thread name, so the output of concurrent workers can be told apart.
"""
import logging
import sys

from cluster_profiles.utilities.config import cpparams


def _build_logger(key: str, name: str) -> logging.Logger:
    section = cpparams["logging", key]

    handler = logging.StreamHandler(getattr(sys, section["stream"]))
    handler.setFormatter(logging.Formatter(section["format"]))

    logger = logging.Logger(name)
    logger.addHandler(handler)
    logger.setLevel(section["level"])
    logger.propagate = False
    logger.disabled = not section.get("enabled", True)

    return logger


mylog: logging.Logger = _build_logger("mylog", "cluster_profiles")
""":py:class:`logging.Logger`: The main logger for ``cluster_profiles``."""
devlog: logging.Logger = _build_logger("devlog", "cp-development")
""":py:class:`logging.Logger`: The development logger for ``cluster_profiles``."""

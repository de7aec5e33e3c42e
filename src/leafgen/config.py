"""Global configuration for leafgen.

This module provides a package-wide configuration surface for logging and
random number generation. Growth itself never touches hidden global state:
callers inject a `numpy.random.Generator`, and `default_rng()` is only the
convenience used when none is supplied. The default seed comes from the
environment so that command-line runs are reproducible too.
"""

from __future__ import annotations

import contextlib
import logging
import os
from typing import ContextManager, Iterator, Optional

import numpy as np


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
_LOGGER = logging.getLogger("leafgen")


def _parse_log_level(val: str | int | None, default: int = logging.WARNING) -> int:
    """Parse a logging level string or int into a `logging` level constant.

    Args:
        val: The desired level (e.g., "DEBUG", 10). May be None.
        default: Fallback level if `val` cannot be parsed.

    Returns:
        An integer logging level (e.g., logging.DEBUG).
    """
    if val is None:
        return default
    if isinstance(val, int):
        return val
    lvl = getattr(logging, str(val).upper(), None)
    if isinstance(lvl, int):
        return lvl
    return default


def set_log_level(level: str | int = "WARNING") -> None:
    """Set the package logger level programmatically.

    Args:
        level: A standard logging level name or integer.
    """
    _LOGGER.setLevel(_parse_log_level(level))


# Default level can be overridden by env.
set_log_level(os.getenv("LEAFGEN_LOGLEVEL", "WARNING"))


# -----------------------------------------------------------------------------
# Env helpers
# -----------------------------------------------------------------------------
def int_env(varname: str, default: int) -> int:
    """Read an environment variable and interpret it as an integer.

    Args:
        varname: The name of the environment variable.
        default: The default value if the variable is unset.

    Returns:
        The integer value parsed from the environment.
    """
    return int(os.getenv(varname, str(default)))


# -----------------------------------------------------------------------------
# Config singleton
# -----------------------------------------------------------------------------
class Config:
    """Global configuration for leafgen.

    Holds the default seed used by `default_rng()` when a caller does not
    inject its own generator.
    """

    def __init__(self) -> None:
        """Initialize config using environment defaults."""
        self._seed_default = int_env("LEAFGEN_SEED", 1234)
        self._seed = self._seed_default
        _LOGGER.debug("Config initialized: seed=%d", self._seed)

    def configure(self, *, seed: Optional[int] = None) -> Config:
        """Reconfigure the default seed.

        Args:
            seed: Optional seed (defaults to the environment default).

        Returns:
            The `Config` instance (for chaining).
        """
        self._seed = self._seed_default if seed is None else int(seed)
        _LOGGER.info("Reconfiguring: seed=%d", self._seed)
        return self

    @contextlib.contextmanager
    def use(self, *, seed: Optional[int] = None) -> Iterator[None]:
        """Temporarily switch the default seed within a context manager.

        Args:
            seed: Optional seed for the duration of the block.

        Yields:
            None. Restores the previous seed on exit.
        """
        prev = self._seed
        try:
            self.configure(seed=seed)
            yield
        finally:
            self._seed = prev
            _LOGGER.debug("Restored previous seed: %d", self._seed)

    def seed(self, s: int = 1234) -> None:
        """Set the default seed.

        Args:
            s: The seed value.
        """
        self._seed = int(s)

    @property
    def current_seed(self) -> int:
        """Return the seed `default_rng()` will use."""
        return self._seed

    def default_rng(self, seed: Optional[int] = None) -> np.random.Generator:
        """Return a fresh PCG64 generator.

        Args:
            seed: Seed override; the configured seed is used when None.

        Returns:
            A new `numpy.random.Generator`.
        """
        s = self._seed if seed is None else int(seed)
        _LOGGER.debug("Creating PCG64 generator with seed=%d", s)
        return np.random.Generator(np.random.PCG64(s))


# Singleton & forwards
config = Config()


def configure(*, seed: Optional[int] = None) -> Config:
    """Reconfigure the default seed (module-level)."""
    return config.configure(seed=seed)


def use(*, seed: Optional[int] = None) -> ContextManager[None]:
    """Temporarily switch the default seed (module-level)."""
    return config.use(seed=seed)


def seed(s: int = 1234) -> None:
    """Set the default seed (module-level)."""
    config.seed(s)


def default_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Return a fresh generator seeded from configuration (module-level)."""
    return config.default_rng(seed)

"""Taichi backend initialisation.

Every module that declares Taichi fields must be imported after the
runtime is initialised, so entry points call ``init_taichi`` first and import
the rest of the package lazily.
"""

from __future__ import annotations

import logging
from typing import Literal

import taichi as ti

logger = logging.getLogger(__name__)

Arch = Literal["auto", "cpu", "gpu"]


def init_taichi(arch: Arch = "auto", random_seed: int = 0) -> str:
    """Initialise the Taichi runtime.

    Args:
        arch: "cpu", "gpu", or "auto" to try the GPU and fall back to the CPU.
        random_seed: Seed for Taichi's per-thread random number generators.

    Returns:
        The name of the backend that was initialised ("cpu" or "gpu").

    Raises:
        ValueError: If arch is not one of the supported values.
    """
    if arch not in ("auto", "cpu", "gpu"):
        raise ValueError(f"Unknown arch: {arch!r}")

    if arch == "cpu":
        ti.init(arch=ti.cpu, random_seed=random_seed)
        backend = "cpu"
    elif arch == "gpu":
        ti.init(arch=ti.gpu, random_seed=random_seed)
        backend = "gpu"
    else:
        try:
            ti.init(arch=ti.gpu, random_seed=random_seed)
            backend = "gpu"
        except Exception:
            logger.info("GPU backend unavailable, falling back to CPU")
            ti.init(arch=ti.cpu, random_seed=random_seed)
            backend = "cpu"

    logger.debug("Taichi initialised with %s backend (seed=%d)", backend, random_seed)
    return backend

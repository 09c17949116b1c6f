"""Parameter checks shared by the material registries."""

import math
from collections.abc import Sequence

from prism.errors import SceneDefinitionError


def check_rgb(value: Sequence[float], name: str) -> tuple[float, float, float]:
    """Return value as a float triple, or raise if it is not 3 finite numbers."""
    if len(value) != 3:
        raise SceneDefinitionError(f"{name} must have 3 components, got {value!r}")
    triple = (float(value[0]), float(value[1]), float(value[2]))
    if not all(math.isfinite(c) for c in triple):
        raise SceneDefinitionError(f"{name} must be finite, got {value!r}")
    return triple


def check_reflectance(albedo: Sequence[float], name: str = "albedo") -> tuple[float, float, float]:
    """Validate a reflectance colour: every component must lie in [0, 1]."""
    triple = check_rgb(albedo, name)
    for i, component in enumerate(triple):
        if component < 0.0 or component > 1.0:
            raise SceneDefinitionError(
                f"{name} component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )
    return triple


def check_emission(emission: Sequence[float]) -> tuple[float, float, float]:
    """Validate an emission colour: components must be non-negative."""
    triple = check_rgb(emission, "emission")
    if any(c < 0.0 for c in triple):
        raise SceneDefinitionError(f"emission must be non-negative, got {emission!r}")
    return triple


def check_unit_interval(value: float, name: str) -> float:
    value = float(value)
    if not math.isfinite(value) or value < 0.0 or value > 1.0:
        raise SceneDefinitionError(f"{name} = {value} is outside [0, 1]")
    return value

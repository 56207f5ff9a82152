"""Numerical building blocks: stencils, derivatives, CPML damping and acquisition."""

from .coefficients import coefficient_system, courant_limit, difference_coefficients
from .difference import difference, staggered_average
from .cpml import (
    DampingProfile,
    Overlap,
    PaddingRegion,
    Side,
    bottom_damping,
    build_damping,
    damping_profile,
    decay_factor,
    lateral_damping,
)
from .acquisition import (
    extend_boundary,
    point_source,
    record_length,
    stable_time_step,
    strip_boundary,
    surface_source,
)
from .wavelets import ricker

__all__ = [
    # Stencils
    "coefficient_system",
    "courant_limit",
    "difference_coefficients",
    "difference",
    "staggered_average",

    # CPML
    "DampingProfile",
    "Overlap",
    "PaddingRegion",
    "Side",
    "bottom_damping",
    "build_damping",
    "damping_profile",
    "decay_factor",
    "lateral_damping",

    # Acquisition
    "extend_boundary",
    "point_source",
    "record_length",
    "stable_time_step",
    "strip_boundary",
    "surface_source",
    "ricker",
]

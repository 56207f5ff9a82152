"""Distributed 2-D acoustic finite-difference modeling with CPML absorbing boundaries."""

from .errors import (
    SimulationError,
    InvalidArgument,
    ShapeMismatch,
    ConfigurationError,
    CommunicationFailure,
)
from .config import SimulationConfig, load_simulation_config
from .simulators.forward import ForwardResult, forward_model

__all__ = [
    # Errors
    "SimulationError",
    "InvalidArgument",
    "ShapeMismatch",
    "ConfigurationError",
    "CommunicationFailure",

    # Configuration
    "SimulationConfig",
    "load_simulation_config",

    # Forward modeling
    "ForwardResult",
    "forward_model",
]

"""
Configuration of a forward modeling run.

A YAML file describes the grid spacing, the stencil, the absorbing layer
and the shot; the velocity model itself is read from a separate ``.npy``
file. Time sampling may be left out, in which case it is derived from the
model's velocity range.

Example::

    dz: 10.0
    dx: 10.0
    order: 3
    boundary: 20
    frequency: 20.0
    source_x: 50
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cpmlfd.modeling.acquisition import record_length, stable_time_step
from cpmlfd.modeling.coefficients import difference_coefficients


class SimulationConfig(BaseModel):
    """
    Parameters of one shot simulation.

    Attributes:
        dz: Depth grid spacing (meters)
        dx: Lateral grid spacing (meters)
        dt: Time step (seconds), derived from the model when omitted
        nt: Number of time samples, derived from the model when omitted
        order: Stencil half-length
        boundary: CPML width in grid points
        frequency: Ricker central frequency (Hz)
        source_x: Shot column in the unpadded model
        source_z: Shot row
        receiver_depth: Recorded row
        safety: Fraction of the stability limit used for a derived time step
    """
    dz: float = Field(10.0, description="Depth grid spacing (meters)")
    dx: float = Field(10.0, description="Lateral grid spacing (meters)")
    dt: Optional[float] = Field(None, description="Time step (seconds)")
    nt: Optional[int] = Field(None, description="Number of time samples")
    order: int = Field(3, description="Stencil half-length")
    boundary: int = Field(20, description="CPML width in grid points")
    frequency: float = Field(20.0, description="Ricker central frequency (Hz)")
    source_x: int = Field(0, description="Shot column in the unpadded model")
    source_z: int = Field(0, description="Shot row")
    receiver_depth: int = Field(0, description="Recorded row")
    safety: float = Field(0.3, description="Fraction of the stability limit")

    model_config = ConfigDict(
        title="Simulation Configuration",
        extra="forbid"
    )

    @field_validator("dz", "dx", "frequency")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate that spacings and frequency are positive."""
        if v <= 0:
            raise ValueError("Grid spacings and frequency must be positive")
        # end if
        return v
    # end def validate_positive

    @field_validator("dt")
    @classmethod
    def validate_time_step(cls, v: Optional[float]) -> Optional[float]:
        """Validate that an explicit time step is positive."""
        if v is not None and v <= 0:
            raise ValueError("Time step must be positive")
        # end if
        return v
    # end def validate_time_step

    @field_validator("nt", "order")
    @classmethod
    def validate_count(cls, v: Optional[int]) -> Optional[int]:
        """Validate that sample counts and the order are positive."""
        if v is not None and v < 1:
            raise ValueError("Order and number of time samples must be at least 1")
        # end if
        return v
    # end def validate_count

    @field_validator("boundary", "source_x", "source_z", "receiver_depth")
    @classmethod
    def validate_index(cls, v: int) -> int:
        """Validate that grid indices are non-negative."""
        if v < 0:
            raise ValueError("Grid indices and boundary width must be non-negative")
        # end if
        return v
    # end def validate_index

    @model_validator(mode="after")
    def validate_safety(self) -> "SimulationConfig":
        """Validate that the safety factor lies in (0, 1]."""
        if not 0 < self.safety <= 1:
            raise ValueError("safety must lie in (0, 1]")
        # end if
        return self
    # end def validate_safety

    def time_sampling(
            self,
            velocity: np.ndarray
    ) -> Tuple[float, int]:
        """
        Time step and number of samples for an unpadded velocity model.

        Missing values are derived from the stencil's stability limit and the
        two-way travel time across the model diagonal.
        """
        velocity = np.asarray(velocity)
        nz, nx = velocity.shape
        dt = self.dt
        if dt is None:
            coefficients = difference_coefficients(self.order, "staggered")
            dt = stable_time_step(float(velocity.max()), self.dz, self.dx, coefficients, self.safety)
        # end if
        nt = self.nt
        if nt is None:
            nt = record_length(nz, nx, self.dz, self.dx, float(velocity.min()), dt)
        # end if
        return dt, nt
    # end def time_sampling

    @classmethod
    def from_yaml(
            cls,
            config_path: Union[str, Path]
    ) -> "SimulationConfig":
        """
        Load a configuration from a YAML file.

        Raises:
            FileNotFoundError: If the configuration file doesn't exist.
            ValueError: If the file is not a mapping.
            pydantic.ValidationError: If a value is invalid.
        """
        config_path = Path(config_path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file '{config_path}' not found.")
        # end if

        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
        # end with

        if data is None:
            data = {}
        # end if
        if not isinstance(data, dict):
            raise ValueError("Simulation configuration must be a mapping.")
        # end if
        return cls.model_validate(data)
    # end def from_yaml

# end class SimulationConfig


def load_simulation_config(
        config_path: Union[str, Path]
) -> SimulationConfig:
    """
    Load and validate a simulation configuration file.
    """
    return SimulationConfig.from_yaml(config_path)
# end def load_simulation_config

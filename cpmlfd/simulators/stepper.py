"""
Leapfrog time stepping of the 2-D acoustic wave equation with CPML.

Each worker advances the pressure of its own column block. The pressure is
held in a frame with ``2*order - 1`` ghost cells on every side: ghost rows and
the ghost columns beyond the grid edges stay at zero, ghost columns shared
with a neighbour are refreshed by a halo exchange before every step.

Per step and per axis the non-split CPML recursion reads::

    dp   = D(p)                      first staggered difference
    phi  = b_half * phi + (b_half - 1) * dp
    dpp  = D(dp + phi)               second staggered difference
    psi  = b * psi + (b - 1) * dpp
    p_ii = dpp + psi

and the pressure is updated with::

    p_next = 2 * p - p_prev + (v * dt)**2 * (p_zz + p_xx + s(t))
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from cpmlfd.errors import ConfigurationError, InvalidArgument, ShapeMismatch
from cpmlfd.modeling.cpml import DampingProfile, decay_factor
from cpmlfd.modeling.difference import difference, staggered_average
from cpmlfd.parallel.halo import HaloExchange


class StepperState(str, Enum):
    """Life cycle of a :class:`WaveStepper`."""
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    STEPPING = "stepping"
    FINISHED = "finished"
# end class StepperState


@dataclass
class CpmlMemoryState:
    """
    Convolution memory of the absorbing layer, one pair per axis.

    ``*_phi`` follow the first difference and live on the half-grid,
    ``*_psi`` follow the second difference and live on the owned points.
    """
    z_phi: np.ndarray
    z_psi: np.ndarray
    x_phi: np.ndarray
    x_psi: np.ndarray

    @classmethod
    def zeros(
            cls,
            nz: int,
            count: int,
            span: int
    ) -> CpmlMemoryState:
        """
        Memory state at rest for a block of ``nz × count`` points.
        """
        return cls(
            z_phi=np.zeros((nz + span, count)),
            z_psi=np.zeros((nz, count)),
            x_phi=np.zeros((nz, count + span)),
            x_psi=np.zeros((nz, count)),
        )
    # end def zeros

# end class CpmlMemoryState


@dataclass
class WavefieldState:
    """
    Pressure at the two most recent time levels, ghost frame included.
    """
    previous: np.ndarray
    current: np.ndarray

    @classmethod
    def zeros(
            cls,
            nz: int,
            count: int,
            halo: int
    ) -> WavefieldState:
        """
        Quiescent pressure for a block of ``nz × count`` points.
        """
        shape = (nz + 2 * halo, count + 2 * halo)
        return cls(previous=np.zeros(shape), current=np.zeros(shape))
    # end def zeros

    def rotate(
            self,
            next_field: np.ndarray
    ) -> None:
        """
        Shift the time levels: ``current`` becomes ``previous``.
        """
        self.previous, self.current = self.current, next_field
    # end def rotate

# end class WavefieldState


class WaveStepper:
    """
    Time integrator of one worker's column block.
    """

    def __init__(
            self,
            velocity: np.ndarray,
            source: np.ndarray,
            coefficients: np.ndarray,
            damping: DampingProfile,
            dz: float,
            dx: float,
            dt: float,
            halo: Optional[HaloExchange] = None,
            receiver_depth: int = 0,
            record_snapshots: bool = False
    ):
        """
        Initialize the stepper.

        Args:
            velocity (numpy.ndarray): Velocity of the block, ``(nz, count)``.
            source (numpy.ndarray): Source field of the block, ``(nz, count, nt)``.
            coefficients (numpy.ndarray): Staggered stencil weights.
            damping (DampingProfile): CPML damping of the block.
            dz (float): Depth grid spacing.
            dx (float): Lateral grid spacing.
            dt (float): Time step.
            halo (HaloExchange, optional): Exchange with the neighbouring
                blocks. ``None`` when the block is the whole grid.
            receiver_depth (int): Row recorded into the traces.
            record_snapshots (bool): Whether to keep the full block at every step.
        """
        self.velocity = np.asarray(velocity, dtype=np.float64)
        self.source = np.asarray(source, dtype=np.float64)
        self.coefficients = np.asarray(coefficients, dtype=np.float64).ravel()
        self.damping = damping
        self.dz = float(dz)
        self.dx = float(dx)
        self.dt = float(dt)
        self.halo = halo
        self.receiver_depth = int(receiver_depth)
        self.record_snapshots = record_snapshots

        if self.source.ndim != 3 or self.source.shape[:2] != self.velocity.shape:
            raise ShapeMismatch(
                f"Source block {self.source.shape} does not match velocity block {self.velocity.shape}"
            )
        # end if
        if not 0 <= self.receiver_depth < self.velocity.shape[0]:
            raise InvalidArgument(
                f"Receiver depth {self.receiver_depth} is outside the grid (nz={self.velocity.shape[0]})"
            )
        # end if

        self.nz, self.count = self.velocity.shape
        self.nt = self.source.shape[2]
        self.order = self.coefficients.size
        self.span = 2 * self.order - 1

        self.state = StepperState.UNINITIALIZED
        self.time_index = 0
        self.wavefield: Optional[WavefieldState] = None
        self.memory: Optional[CpmlMemoryState] = None
        self.traces: Optional[np.ndarray] = None
        self.snapshots: Optional[np.ndarray] = None
    # end def __init__

    def _framed(
            self,
            values: np.ndarray
    ) -> np.ndarray:
        """
        Extend block values to the ghost frame.

        Values past the grid edges repeat the outermost sample, values owned by
        a neighbour come from the halo exchange.
        """
        framed = np.pad(values, self.span, mode="edge")
        if self.halo is not None:
            self.halo.exchange(framed)
        # end if
        return framed
    # end def _framed

    def initialize(self) -> None:
        """
        Derive decay factors and zero the wavefield and memory state.

        Raises:
            ConfigurationError: If the halo width does not match the stencil.
        """
        if self.halo is not None and self.halo.width != self.span:
            raise ConfigurationError(
                f"Halo width {self.halo.width} does not match stencil span {self.span}"
            )
        # end if

        owned_rows = slice(self.span, self.span + self.nz)
        owned_cols = slice(self.span, self.span + self.count)
        z_frame = self._framed(self.damping.z)
        x_frame = self._framed(self.damping.x)

        self.z_decay_half = decay_factor(staggered_average(z_frame[:, owned_cols], self.order, 0), self.dt)
        self.z_decay = decay_factor(self.damping.z, self.dt)
        self.x_decay_half = decay_factor(staggered_average(x_frame[owned_rows, :], self.order, 1), self.dt)
        self.x_decay = decay_factor(self.damping.x, self.dt)

        self.velocity_dt_squared = (self.velocity * self.dt) ** 2

        self.wavefield = WavefieldState.zeros(self.nz, self.count, self.span)
        self.memory = CpmlMemoryState.zeros(self.nz, self.count, self.span)
        self.traces = np.zeros((self.count, self.nt))
        if self.record_snapshots:
            self.snapshots = np.zeros((self.nz, self.count, self.nt))
        # end if

        self.time_index = 0
        self.state = StepperState.READY
    # end def initialize

    def exchange_halo(self) -> None:
        """
        Refresh the ghost columns of the current pressure.
        """
        if self.halo is not None:
            self.halo.exchange(self.wavefield.current)
        # end if
    # end def exchange_halo

    def _laplacian(self) -> np.ndarray:
        """
        CPML-corrected ``p_zz + p_xx`` of the current pressure on the owned points.
        """
        c = self.coefficients
        memory = self.memory
        current = self.wavefield.current
        owned_rows = slice(self.span, self.span + self.nz)
        owned_cols = slice(self.span, self.span + self.count)

        # Depth
        dp = difference(current[:, owned_cols], c, self.dz, axis=0)
        memory.z_phi = self.z_decay_half * memory.z_phi + (self.z_decay_half - 1.0) * dp
        dpp = difference(dp + memory.z_phi, c, self.dz, axis=0)
        memory.z_psi = self.z_decay * memory.z_psi + (self.z_decay - 1.0) * dpp
        p_zz = dpp + memory.z_psi

        # Lateral, ghost columns included
        dp = difference(current[owned_rows, :], c, self.dx, axis=1)
        memory.x_phi = self.x_decay_half * memory.x_phi + (self.x_decay_half - 1.0) * dp
        dpp = difference(dp + memory.x_phi, c, self.dx, axis=1)
        memory.x_psi = self.x_decay * memory.x_psi + (self.x_decay - 1.0) * dpp
        p_xx = dpp + memory.x_psi

        return p_zz + p_xx
    # end def _laplacian

    def advance(self) -> None:
        """
        Compute the next pressure level, assuming ghost columns are fresh.

        Raises:
            RuntimeError: If the stepper is not initialized or already finished.
        """
        if self.state not in (StepperState.READY, StepperState.STEPPING):
            raise RuntimeError(f"Cannot step a wave stepper in state '{self.state.value}'")
        # end if

        t = self.time_index
        owned_rows = slice(self.span, self.span + self.nz)
        owned_cols = slice(self.span, self.span + self.count)

        laplacian = self._laplacian()
        current = self.wavefield.current[owned_rows, owned_cols]
        previous = self.wavefield.previous[owned_rows, owned_cols]

        next_field = np.zeros_like(self.wavefield.current)
        next_field[owned_rows, owned_cols] = (
            2.0 * current
            - previous
            + self.velocity_dt_squared * (laplacian + self.source[:, :, t])
        )
        self.wavefield.rotate(next_field)

        # Record the new level
        interior = next_field[owned_rows, owned_cols]
        self.traces[:, t] = interior[self.receiver_depth, :]
        if self.snapshots is not None:
            self.snapshots[:, :, t] = interior
        # end if

        self.time_index += 1
        self.state = StepperState.FINISHED if self.time_index == self.nt else StepperState.STEPPING
    # end def advance

    def step(self) -> None:
        """
        Advance one time step: halo exchange, then update.
        """
        if self.state not in (StepperState.READY, StepperState.STEPPING):
            raise RuntimeError(f"Cannot step a wave stepper in state '{self.state.value}'")
        # end if
        self.exchange_halo()
        self.advance()
    # end def step

    def run(
            self,
            callback: Optional[Callable[[int], None]] = None
    ) -> None:
        """
        Step until the last time sample.

        Args:
            callback (callable, optional): Called with the time index after every step.
        """
        if self.state is StepperState.UNINITIALIZED:
            self.initialize()
        # end if
        while self.state is not StepperState.FINISHED:
            self.step()
            if callback is not None:
                callback(self.time_index)
            # end if
        # end while
    # end def run

# end class WaveStepper

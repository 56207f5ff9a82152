"""
Tests for the wave stepper, alone and split across thread-backed workers.
"""

import numpy as np
import pytest

from cpmlfd.errors import ConfigurationError, InvalidArgument, ShapeMismatch
from cpmlfd.modeling.acquisition import point_source
from cpmlfd.modeling.coefficients import difference_coefficients
from cpmlfd.modeling.cpml import build_damping
from cpmlfd.modeling.wavelets import ricker
from cpmlfd.parallel.decomposition import partition_columns
from cpmlfd.parallel.halo import HaloExchange
from cpmlfd.simulators.stepper import (
    CpmlMemoryState,
    StepperState,
    WavefieldState,
    WaveStepper,
)


DZ = 10.0
DX = 10.0
DT = 1e-3


def _survey(nz=30, nx=40, nt=120, source_position=(5, 20)):
    """Layered model with a point source."""
    velocity = np.full((nz, nx), 2000.0)
    velocity[nz // 2:, :] = 2600.0
    wavelet, _ = ricker(25.0, DT)
    # Short runs keep only the wavelet's first samples
    wavelet = np.pad(wavelet, (0, max(0, nt - wavelet.size)))[:nt]
    source = point_source((nz, nx), source_position[0], source_position[1], wavelet)
    return velocity, source
# end def _survey


def _single_stepper(velocity, source, order, boundary, **kwargs):
    nx = velocity.shape[1]
    damping = build_damping(velocity, 0, nx, boundary, DZ, DX)
    return WaveStepper(velocity, source, difference_coefficients(order), damping, DZ, DX, DT, **kwargs)
# end def _single_stepper


def _run_split(run_workers, velocity, source, order, boundary, workers, receiver_depth=0):
    """Run one stepper per column block and stitch the outputs."""
    nx = velocity.shape[1]
    coefficients = difference_coefficients(order)
    partitions = partition_columns(nx, workers)

    def work(comm):
        block = partitions[comm.Get_rank()]
        local_velocity = velocity[:, block.columns]
        damping = build_damping(local_velocity, block.offset, nx, boundary, DZ, DX)
        stepper = WaveStepper(
            local_velocity,
            source[:, block.columns, :],
            coefficients,
            damping,
            DZ,
            DX,
            DT,
            halo=HaloExchange(comm, 2 * order - 1),
            receiver_depth=receiver_depth,
            record_snapshots=True,
        )
        stepper.run()
        return stepper.traces, stepper.snapshots
    # end def work

    outputs = run_workers(workers, work)
    traces = np.concatenate([out[0] for out in outputs], axis=0)
    snapshots = np.concatenate([out[1] for out in outputs], axis=1)
    return traces, snapshots
# end def _run_split


def test_state_transitions():
    """Uninitialized, ready, stepping, then finished after nt steps."""
    velocity, source = _survey(nt=5)
    stepper = _single_stepper(velocity, source, 2, 5)
    assert stepper.state is StepperState.UNINITIALIZED

    stepper.initialize()
    assert stepper.state is StepperState.READY
    assert stepper.time_index == 0

    stepper.step()
    assert stepper.state is StepperState.STEPPING
    assert stepper.time_index == 1

    stepper.run()
    assert stepper.state is StepperState.FINISHED
    assert stepper.time_index == 5
# end def test_state_transitions


def test_stepping_outside_the_run():
    """Stepping before initialization or after the last sample is an error."""
    velocity, source = _survey(nt=3)
    stepper = _single_stepper(velocity, source, 2, 5)
    with pytest.raises(RuntimeError):
        stepper.step()
    # end with

    stepper.run()
    with pytest.raises(RuntimeError):
        stepper.step()
    # end with
# end def test_stepping_outside_the_run


def test_zero_source_stays_at_rest():
    """Without a source the wavefield and memory remain zero."""
    velocity, source = _survey(nt=20)
    source[...] = 0.0
    stepper = _single_stepper(velocity, source, 3, 8, record_snapshots=True)
    stepper.run()
    assert not stepper.traces.any()
    assert not stepper.snapshots.any()
    assert not stepper.memory.x_psi.any()
# end def test_zero_source_stays_at_rest


def test_state_shapes():
    """Memory lives on the half-grid and the pressure carries a ghost frame."""
    order, nz, count = 3, 12, 9
    span = 2 * order - 1
    memory = CpmlMemoryState.zeros(nz, count, span)
    assert memory.z_phi.shape == (nz + span, count)
    assert memory.x_phi.shape == (nz, count + span)
    assert memory.z_psi.shape == memory.x_psi.shape == (nz, count)

    wavefield = WavefieldState.zeros(nz, count, span)
    assert wavefield.current.shape == (nz + 2 * span, count + 2 * span)
    level = np.ones_like(wavefield.current)
    wavefield.rotate(level)
    assert wavefield.current is level
    assert not wavefield.previous.any()
# end def test_state_shapes


def test_first_step_injects_the_source():
    """After one step only the source point is excited, scaled by (v dt)^2."""
    velocity, source = _survey(nt=4)
    source[...] = 0.0
    source[5, 20, 0] = 1.0
    stepper = _single_stepper(velocity, source, 2, 5, record_snapshots=True)
    stepper.run()
    first = stepper.snapshots[:, :, 0]
    assert first[5, 20] == pytest.approx((2000.0 * DT) ** 2)
    assert np.count_nonzero(first) == 1
# end def test_first_step_injects_the_source


def test_records_requested_depth():
    """Traces are the snapshot row at the receiver depth."""
    velocity, source = _survey(nt=60)
    stepper = _single_stepper(velocity, source, 3, 8, receiver_depth=7, record_snapshots=True)
    stepper.run()
    np.testing.assert_array_equal(stepper.traces, stepper.snapshots[7, :, :])
    assert np.abs(stepper.traces).max() > 0.0
# end def test_records_requested_depth


def test_invalid_inputs():
    """Mismatched source blocks and off-grid receivers are rejected."""
    velocity, source = _survey(nt=4)
    with pytest.raises(ShapeMismatch):
        _single_stepper(velocity, source[:, :-1, :], 2, 5)
    # end with
    with pytest.raises(InvalidArgument):
        _single_stepper(velocity, source, 2, 5, receiver_depth=velocity.shape[0])
    # end with
# end def test_invalid_inputs


def test_halo_width_must_match_stencil(run_workers):
    """A halo narrower than two staggered passes is a configuration error."""
    velocity, source = _survey(nt=4)

    def work(comm):
        stepper = _single_stepper(velocity, source, 3, 5, halo=HaloExchange(comm, 2))
        stepper.initialize()
    # end def work

    with pytest.raises(ConfigurationError):
        run_workers(1, work)
    # end with
# end def test_halo_width_must_match_stencil


def test_absorbing_layer_removes_energy():
    """The CPML drains the wavefield once the wave has left the interior."""
    velocity, source = _survey(nz=50, nx=50, nt=700, source_position=(20, 25))
    velocity[...] = 2000.0
    damped = _single_stepper(velocity, source, 3, 15, record_snapshots=True)
    rigid = _single_stepper(velocity, source, 3, 0, record_snapshots=True)
    damped.run()
    rigid.run()
    late_damped = np.mean(np.sum(damped.snapshots[:, :, -50:] ** 2, axis=(0, 1)))
    late_rigid = np.mean(np.sum(rigid.snapshots[:, :, -50:] ** 2, axis=(0, 1)))
    assert np.all(np.isfinite(damped.snapshots))
    assert late_damped < 0.05 * late_rigid
# end def test_absorbing_layer_removes_energy


@pytest.mark.parametrize("order, workers", [(2, 2), (2, 3), (3, 4), (4, 2)])
def test_split_run_matches_single_worker(run_workers, order, workers):
    """Column blocks with halo exchange reproduce the undivided run."""
    velocity, source = _survey()
    boundary = 8

    single = _single_stepper(velocity, source, order, boundary, receiver_depth=3, record_snapshots=True)
    single.run()

    traces, snapshots = _run_split(run_workers, velocity, source, order, boundary, workers, receiver_depth=3)
    assert traces.shape == single.traces.shape
    np.testing.assert_allclose(snapshots, single.snapshots, rtol=1e-10, atol=1e-14)
    np.testing.assert_allclose(traces, single.traces, rtol=1e-10, atol=1e-14)
    assert np.abs(single.traces).max() > 0.0
# end def test_split_run_matches_single_worker

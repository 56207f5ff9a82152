"""
Forward modeling and reverse-time migration of a two-layer model.

Run on several workers with::

    mpiexec -n 4 python examples/rtm_two_layer.py
"""
import numpy as np
from scipy.ndimage import gaussian_filter

from cpmlfd.modeling.acquisition import extend_boundary, stable_time_step, strip_boundary, surface_source
from cpmlfd.modeling.coefficients import difference_coefficients
from cpmlfd.modeling.wavelets import ricker
from cpmlfd.parallel.runtime import WorkerGroup
from cpmlfd.simulators.forward import forward_model
from cpmlfd.simulators.migration import migrate_survey
from cpmlfd.simulators.plotting import plot_shot_record, plot_snapshot

# Grid
nz, nx = 100, 150
dz = dx = 10.0
order = 4
boundary = 20
nt = 900
frequency = 15.0

# Shots along the surface (unpadded columns)
SHOTS = [30, 75, 120]

group = WorkerGroup()

velocity = background = sources = None
dt = None
if group.is_master:
    true_model = np.full((nz, nx), 2000.0)
    true_model[60:, :] = 2800.0
    smooth_model = gaussian_filter(true_model, sigma=8.0)

    dt = stable_time_step(true_model.max(), dz, dx, difference_coefficients(order), safety=0.4)
    wavelet, _ = ricker(frequency, dt, nt)

    velocity = extend_boundary(true_model, boundary)
    background = extend_boundary(smooth_model, boundary)
    sources = [surface_source(velocity.shape, x + boundary, wavelet) for x in SHOTS]
# end if
dt = group.broadcast(dt)
if sources is None:
    sources = [None] * len(SHOTS)
# end if

options = dict(order=order, boundary=boundary, dz=dz, dx=dx, dt=dt)

# One shot record for display
record = forward_model(velocity, sources[0], snapshots=False, group=group, verbose=True, **options)

image = migrate_survey(velocity, background, sources, group=group, verbose=True, **options)

if group.is_master:
    traces = strip_boundary(record.traces, boundary, traces=True)
    plot_shot_record(traces, dt, dx, output_path="figures/shot_record.png", title=f"Shot at x={SHOTS[0]}")
    plot_snapshot(
        strip_boundary(image, boundary),
        dz,
        dx,
        output_path="figures/rtm_image.png",
        title="Stacked RTM image",
        cmap="gray",
    )
# end if

"""
Figures of shot records, wavefield snapshots and migrated images.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import matplotlib.pyplot as plt
import numpy as np
from rich.console import Console


console = Console()


def _finish(
        fig,
        output_path: Optional[Union[str, Path]],
        show: bool
) -> Optional[Path]:
    """
    Save and/or display a figure, then release it.
    """
    saved = None
    if output_path is not None:
        saved = Path(output_path)
        saved.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(saved, dpi=150)
        console.log(f"[cyan]Saved figure to:[/cyan] {saved}")
    # end if

    if show:
        plt.show()
    else:
        plt.close(fig)
    # end if
    return saved
# end def _finish


def plot_shot_record(
        traces: np.ndarray,
        dt: float,
        dx: float,
        output_path: Optional[Union[str, Path]] = None,
        title: str = "Shot Record",
        clip: Optional[float] = None,
        show: bool = False
) -> Optional[Path]:
    """
    Plot a trace record as a distance/time image.

    Args:
        traces (numpy.ndarray): Record of shape ``(nx, nt)``.
        dt (float): Time step in seconds.
        dx (float): Receiver spacing in metres.
        output_path (str or Path, optional): Where to save the figure.
        title (str): Figure title.
        clip (float, optional): Symmetric color limit. Defaults to the
            largest absolute amplitude.
        show (bool): Display the figure interactively.

    Returns:
        Path or None: The saved figure path.
    """
    traces = np.asarray(traces)
    nx, nt = traces.shape
    clip = clip if clip is not None else float(np.max(np.abs(traces))) or 1.0

    fig, ax = plt.subplots(figsize=(8, 6))
    im = ax.imshow(
        traces.T,
        extent=[0.0, (nx - 1) * dx, (nt - 1) * dt, 0.0],
        aspect="auto",
        cmap="seismic",
        vmin=-clip,
        vmax=clip,
    )
    ax.set_xlabel("Distance (m)")
    ax.set_ylabel("Time (s)")
    ax.set_title(title)
    fig.colorbar(im, ax=ax, label="Amplitude")
    return _finish(fig, output_path, show)
# end def plot_shot_record


def plot_snapshot(
        field: np.ndarray,
        dz: float,
        dx: float,
        output_path: Optional[Union[str, Path]] = None,
        title: str = "Wave Propagation",
        cmap: str = "seismic",
        show: bool = False
) -> Optional[Path]:
    """
    Plot a ``(nz, nx)`` field: a pressure snapshot or a migrated image.

    Returns:
        Path or None: The saved figure path.
    """
    field = np.asarray(field)
    nz, nx = field.shape

    fig, ax = plt.subplots(figsize=(8, 6))
    im = ax.imshow(
        field,
        extent=[0.0, (nx - 1) * dx, (nz - 1) * dz, 0.0],
        aspect="auto",
        cmap=cmap,
    )
    ax.set_xlabel("Distance (m)")
    ax.set_ylabel("Depth (m)")
    ax.set_title(title)
    fig.colorbar(im, ax=ax)
    return _finish(fig, output_path, show)
# end def plot_snapshot

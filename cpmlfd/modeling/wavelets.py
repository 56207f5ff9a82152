"""
Source wavelets.

The Ricker wavelet (Mexican hat) is the usual source signature of the
acoustic simulations: the negative normalized second derivative of a
Gaussian, delayed so that the whole main lobe lies after ``t = 0``.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np
from rich.console import Console

from cpmlfd.errors import InvalidArgument


console = Console()


def ricker(
        frequency: float,
        time_step: float,
        num_samples: Optional[int] = None,
        log: bool = False,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate a Ricker wavelet.

    Args:
        frequency (float): Central frequency of the wavelet in Hz.
        time_step (float): Sampling interval in seconds.
        num_samples (int, optional): Total number of samples. The wavelet is
            zero-padded to this length. If None, only the wavelet itself is
            returned (about ``2.2`` periods).
        log (bool, optional): If True, print the wavelet parameters.

    Returns:
        tuple: A tuple containing:
            - wavelet (numpy.ndarray): The wavelet samples
            - time_vector (numpy.ndarray): The corresponding times in seconds

    Raises:
        InvalidArgument: If ``frequency`` or ``time_step`` is not positive, or
            if ``num_samples`` is smaller than the wavelet length.

    Example:
        >>> wavelet, time = ricker(20.0, 0.001, num_samples=1000)
    """
    if frequency <= 0 or time_step <= 0:
        raise InvalidArgument(
            f"Frequency and time step must be positive, got {frequency} and {time_step}"
        )
    # end if

    if log:
        console.print(f"[green]Generating Ricker wavelet[/]")
        console.print(f"[yellow]Frequency: [/] {frequency}")
        console.print(f"[yellow]Time step: [/] {time_step}")
        console.print(f"[yellow]Number of samples: [/] {num_samples}")
    # end if

    # Odd length, symmetric around the central peak
    length = int(2.2 / frequency / time_step)
    length = 2 * (length // 2) + 1
    center = length // 2

    alpha = (center - np.arange(length)) * frequency * time_step * np.pi
    beta = alpha ** 2
    wavelet_raw = (1.0 - 2.0 * beta) * np.exp(-beta)

    if num_samples is not None:
        if num_samples < length:
            raise InvalidArgument(
                f"num_samples ({num_samples}) is smaller than the wavelet length ({length})"
            )
        # end if
        wavelet = np.zeros(num_samples)
        wavelet[:length] = wavelet_raw
    else:
        wavelet = wavelet_raw
    # end if

    time_vector = np.arange(wavelet.size) * time_step
    return wavelet, time_vector
# end def ricker

"""
Exceptions raised by the finite-difference modeling engine.

Argument and shape errors abort a single computation and can be retried with
corrected inputs. Configuration and communication errors are fatal for the
whole distributed run.
"""


class SimulationError(Exception):
    """Base class for every error raised by cpmlfd."""
# end class SimulationError


class InvalidArgument(SimulationError, ValueError):
    """An argument is outside the range an operation accepts."""
# end class InvalidArgument


class ShapeMismatch(SimulationError, ValueError):
    """Paired arrays do not have matching dimensions."""
# end class ShapeMismatch


class ConfigurationError(SimulationError):
    """The worker layout cannot run the requested grid."""
# end class ConfigurationError


class CommunicationFailure(SimulationError):
    """A collective or point-to-point transfer between workers failed."""
# end class CommunicationFailure

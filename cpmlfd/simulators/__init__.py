from .stepper import CpmlMemoryState, StepperState, WavefieldState, WaveStepper
from .gatherer import ResultGatherer
from .forward import ForwardResult, forward_model
from .migration import cross_correlation_image, migrate_shot, migrate_survey, reverse_time_model

__all__ = [
    "CpmlMemoryState",
    "StepperState",
    "WavefieldState",
    "WaveStepper",
    "ResultGatherer",
    "ForwardResult",
    "forward_model",
    "cross_correlation_image",
    "migrate_shot",
    "migrate_survey",
    "reverse_time_model",
]

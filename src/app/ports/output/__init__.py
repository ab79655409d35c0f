from .map_renderer import IMapRenderer
from .position_source import ErrorCallback, IPositionSource, SampleCallback
from .ride_backend import IRideBackend
from .scheduler import Cancellable, IScheduler

__all__ = [
    "Cancellable",
    "ErrorCallback",
    "IMapRenderer",
    "IPositionSource",
    "IRideBackend",
    "IScheduler",
    "SampleCallback",
]

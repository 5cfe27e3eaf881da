"""Relocation of tagged files into tag destinations."""

from .errors import NoDestinationError, RelocationError
from .executor import Relocator, reserve_destination
from .models import MoveFailure, MoveRecord, RelocationReport, RelocationSummary

__all__ = [
    "MoveFailure",
    "MoveRecord",
    "NoDestinationError",
    "RelocationError",
    "RelocationReport",
    "RelocationSummary",
    "Relocator",
    "reserve_destination",
]

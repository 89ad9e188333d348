"""
Conversion layer for PDF <-> JSON round trips.
Provides the engine loader, staging filesystem and gateway that drive qpdf,
so front-ends (HTTP or others) can share the same core logic.
"""

from .errors import (
    EngineUnavailable,
    InvalidTransition,
    RoundTripError,
    StagingNotFound,
    StagingProtocolViolation,
)
from .interfaces import EngineFactory, EngineHandle, StagingPaths
from .loader import EngineLoader
from .outcomes import ConversionOutcome, Failure, FailureReason, Success
from .service import ConversionGateway
from .staging import StagingFilesystem

"""Core phased-array engine: steering math, array units, field synthesis."""

from beamscape.core.array_unit import (
    ArrayGeometry,
    ArrayUnit,
    ArrayUnitConfig,
    BeamPatternSample,
    ElementPosition,
    new_unit_id,
)
from beamscape.core.field import (
    BeamscapeError,
    Bounds,
    EmptySceneError,
    FieldRequestError,
    FieldResult,
    FieldSimulationRequest,
    InvalidBoundsError,
    InvalidResolutionError,
    JobState,
    NormalizationError,
    RenderMode,
    WidebandMode,
    simulate_field,
    validate_request,
)
from beamscape.core.steering import Steering, normalize_steering
from beamscape.core.transport import (
    CancelJob,
    FieldJobClient,
    FieldJobError,
    FieldSimulationWorker,
    JobError,
    JobProgress,
    JobResult,
    StartJob,
    new_job_id,
)

__all__ = [
    "ArrayUnit",
    "ArrayUnitConfig",
    "ArrayGeometry",
    "ElementPosition",
    "BeamPatternSample",
    "new_unit_id",
    "Steering",
    "normalize_steering",
    "Bounds",
    "RenderMode",
    "WidebandMode",
    "JobState",
    "FieldSimulationRequest",
    "FieldResult",
    "simulate_field",
    "validate_request",
    "BeamscapeError",
    "FieldRequestError",
    "InvalidBoundsError",
    "InvalidResolutionError",
    "EmptySceneError",
    "NormalizationError",
    "StartJob",
    "CancelJob",
    "JobProgress",
    "JobResult",
    "JobError",
    "FieldSimulationWorker",
    "FieldJobClient",
    "FieldJobError",
    "new_job_id",
]

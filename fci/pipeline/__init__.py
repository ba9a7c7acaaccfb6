"""Release and quality gate orchestration for the forestry project."""

from .errors import PipelineError, error_kind
from .model import Event, JobResult, JobStatus, MatrixCell, WorkflowRun
from .runner import WorkflowRunner
from .triggers import TriggerPlan, evaluate

__all__ = [
    # errors
    "PipelineError",
    "error_kind",
    # model
    "Event",
    "JobResult",
    "JobStatus",
    "MatrixCell",
    "WorkflowRun",
    # runner
    "WorkflowRunner",
    # triggers
    "TriggerPlan",
    "evaluate",
]

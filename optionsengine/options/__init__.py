"""Option buckets: staging overlay and the RegisterOptions orchestrator."""

from .register_options import RegisterOptions
from .staging import Origin, StagedValue, StagingBuffer

__all__ = ["RegisterOptions", "StagingBuffer", "StagedValue", "Origin"]

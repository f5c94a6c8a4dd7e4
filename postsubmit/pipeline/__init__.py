"""
Postsubmit Build Module

Provides change-driven project rebuilds:
- Per-project make invocation
- Dry-run planning
- Fail-fast sequential execution
"""

from postsubmit.pipeline.invoker import (
    BuildInvoker,
    BuildParameters,
    IMAGE_TAG_TEMPLATE,
)
from postsubmit.pipeline.orchestrator import (
    PostsubmitOrchestrator,
    PostsubmitResult,
    main,
)

__all__ = [
    "BuildInvoker",
    "BuildParameters",
    "IMAGE_TAG_TEMPLATE",
    "PostsubmitOrchestrator",
    "PostsubmitResult",
    "main",
]

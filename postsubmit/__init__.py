"""
Postsubmit rebuild orchestrator.

Decides which vendored projects changed in the latest merge and rebuilds
them with a consistent `make` invocation.
"""

__version__ = "0.1.0"

"""Cache decisions for the library bundle.

Public Interface:
    - needs_rebuild: Single decision point gating bundle rebuilds
    - diff_dependencies: Describe a dependency change for logging
"""

from .detection import diff_dependencies
from .detection import needs_rebuild

__all__ = [
    "needs_rebuild",
    "diff_dependencies",
]

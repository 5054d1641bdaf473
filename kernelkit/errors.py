"""Error types raised by the toolkit.

AIDEV-NOTE: ConfigurationError is raised while options, kernels or rasters
are being built, before any pixel is processed. ComputationError is raised
while an algorithm runs. Both derive from the matching builtin so callers
that only know about ValueError/ArithmeticError still catch them.
"""


class KernelkitError(Exception):
    """Base class for all toolkit errors."""


class ConfigurationError(KernelkitError, ValueError):
    """Invalid option, kernel shape or pixel buffer."""


class ComputationError(KernelkitError, ArithmeticError):
    """An algorithm could not produce a valid result."""


class EmptyClusterError(ComputationError):
    """A K-Means centroid ended an iteration without any member samples."""

    def __init__(self, cluster_index: int, iteration: int):
        self.cluster_index = cluster_index
        self.iteration = iteration
        super().__init__(
            f"Cluster {cluster_index} has no samples after iteration {iteration}"
        )


class InsufficientSamplesError(ComputationError):
    """Fewer distinct-valued samples exist than requested clusters."""

    def __init__(self, distinct_count: int, cluster_count: int):
        self.distinct_count = distinct_count
        self.cluster_count = cluster_count
        super().__init__(
            f"Cannot pick {cluster_count} distinct centroids from "
            f"{distinct_count} distinct samples"
        )

"""Error taxonomy of the segmentation engine."""


class GrabCutError(Exception):
    """Base class for every error raised by the engine."""


class InvalidInput(GrabCutError, ValueError):
    """Malformed image, mask, samples, labels or parameters. Never retried."""


class GraphConstructionError(GrabCutError):
    """The flow graph could not be built from the energy terms."""


class SolverError(GrabCutError):
    """The min-cut oracle failed or returned an unusable partition."""

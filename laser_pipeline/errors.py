class MalformedFrameError(ValueError):
    """Frame payload cannot be processed (bad buffer size, missing matrices, ...)."""


class DegenerateGeometryError(MalformedFrameError):
    """Camera geometry is unusable for this frame (zero focal length, singular pose, ...)."""

"""Exceptions raised by the block-motion interpolation pipeline."""


class InterpolationError(Exception):
    """Base class for every failure the pipeline surfaces to its caller."""


class PreconditionError(InterpolationError, ValueError):
    """Inputs do not satisfy the contract of an operation (types, sizes, channels)."""


class ConfigError(InterpolationError, ValueError):
    """Invalid interpolation settings."""


class MotionFieldError(InterpolationError):
    """A motion field cell was written twice or read before it was finalized."""


class FrameReadError(InterpolationError, IOError):
    """A requested frame or video could not be read."""


class ReportSinkError(InterpolationError, IOError):
    """The timing report could not be written."""

"""Exception types raised by the StrideLab pipeline."""


class StrideLabError(Exception):
    """Base class for all StrideLab failures."""


class InputError(StrideLabError, ValueError):
    """Invalid caller input: non-positive dimensions or band widths."""


class DecodeError(StrideLabError):
    """The uploaded file could not be decoded into an image."""


class AdvisoryServiceError(StrideLabError):
    """The advisory request failed or returned something unparseable."""

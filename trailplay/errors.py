"""
Parse Errors for Track Analysis

Parser-level failures are terminal for their input: the caller receives one
of these and never a partial track. Invalid individual points are skipped
inside the parser and never surface here.
"""


class ParseError(ValueError):
    """Base class for structured parse failures."""

    code = "PARSE_ERROR"

    def to_dict(self) -> dict:
        return {"code": self.code, "message": str(self)}


class InvalidFormatError(ParseError):
    """Input could not be decoded into point records at all."""

    code = "INVALID_FORMAT"


class NoTrackPointsError(ParseError):
    """Input decoded, but no usable points exist across all point tiers."""

    code = "NO_TRACK_POINTS"


def error_from_dict(data: dict) -> ParseError:
    """Rebuild a ParseError from its ``to_dict()`` form (used across the worker boundary)."""
    by_code = {cls.code: cls for cls in (ParseError, InvalidFormatError, NoTrackPointsError)}
    cls = by_code.get(data.get("code"), ParseError)
    return cls(data.get("message", ""))

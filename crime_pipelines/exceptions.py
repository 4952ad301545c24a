# Error taxonomy for the crime analytics pipeline

from typing import Iterable


class MissingInputError(FileNotFoundError):
    """No raw input file and the synthetic generator is disabled."""


class SchemaResolutionError(KeyError):
    """None of the accepted column aliases is present for a required field."""

    def __init__(self, field: str, aliases: Iterable[str]):
        self.field = field
        self.aliases = tuple(aliases)
        super().__init__(
            f"Could not resolve required field '{field}'. "
            f"Accepted columns: {', '.join(self.aliases)}"
        )

    def __str__(self) -> str:
        return self.args[0]


class SchemaVersionError(SchemaResolutionError):
    """A stored artifact was written with a different schema version."""

    def __init__(self, artifact: str, found, expected):
        self.artifact = artifact
        self.found = found
        self.expected = expected
        KeyError.__init__(
            self,
            f"Artifact '{artifact}' has schema version {found}, expected {expected}. "
            "Re-run the pipeline without --resume to regenerate it.",
        )


class EmptyResultError(ValueError):
    """A stage produced (or received) no usable records."""


class ExternalModelError(RuntimeError):
    """A forecasting library failed while fitting or predicting."""

    def __init__(self, model_name: str, message: str):
        self.model_name = model_name
        super().__init__(f"{model_name} unavailable: {message}")


class ForecastAlignmentError(ValueError):
    """Forecast sequences from different models cover different periods."""


class RenderError(OSError):
    """A chart or map could not be written."""


FATAL_ERRORS = (MissingInputError, SchemaResolutionError, EmptyResultError)

__all__ = [
    "MissingInputError",
    "SchemaResolutionError",
    "SchemaVersionError",
    "EmptyResultError",
    "ExternalModelError",
    "ForecastAlignmentError",
    "RenderError",
    "FATAL_ERRORS",
]

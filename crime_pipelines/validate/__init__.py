# __init__ for validate utils

from .core import (
    require_rows,
    require_artifact,
    run_validation_checks,
    show_missing_summary,
    run_validations,
)

__all__ = [
    "require_rows",
    "require_artifact",
    "run_validation_checks",
    "show_missing_summary",
    "run_validations",
]

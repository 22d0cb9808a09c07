from .lang import expected_script, looks_translated
from .logging_config import configure_logging

__all__ = [
    "configure_logging",
    "expected_script",
    "looks_translated",
]

"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Atomic I/O and YAML (fs)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers.

Convenience imports:
    from src.utils import fs
    from src.utils.logging_config import setup_logging, push_context
"""

from . import fs
from . import logging_config

from .logging_config import pop_context, push_context, setup_logging

__all__ = [
    'fs',
    'logging_config',
    'pop_context',
    'push_context',
    'setup_logging',
]

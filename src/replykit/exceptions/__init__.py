# replykit/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # Error kinds (ResponseError subclasses, ExternalApiError)
# │   └── integrity_classifier.py    # Detect DB unique-constraint violations across drivers

from .base import *  # noqa: F401,F403
from .base import __all__ as _base_all
from .integrity_classifier import is_unique_constraint_error

__all__ = [*_base_all, "is_unique_constraint_error"]

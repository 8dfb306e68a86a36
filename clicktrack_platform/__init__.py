"""
clicktrack_platform package initializer.
"""

from . import analytics
from . import fingerprint
from . import limiter
from . import manager
from . import storage
from . import utils

__all__ = ["analytics", "fingerprint", "limiter", "manager", "storage", "utils"]

"""SessionGuard: session + rotating CSRF token HTTP client and reference backend."""

from sessionguard.client import ApiClient
from sessionguard.config import Posture, Settings, get_settings

__version__ = "0.3.0"

__all__ = ["ApiClient", "Posture", "Settings", "get_settings", "__version__"]

"""Router module initialization"""

from . import blobs, customization, models, system

__all__ = [
    "blobs",
    "customization",
    "models",
    "system",
]

"""
Módulo de captura de vídeo.
"""

from .webcam import (
    WebcamCapture,
    normalize_bounding_box,
    HAVE_NOTHING,
    HAVE_METADATA,
    HAVE_CURRENT_DATA,
    HAVE_ENOUGH_DATA
)

__all__ = [
    'WebcamCapture',
    'normalize_bounding_box',
    'HAVE_NOTHING',
    'HAVE_METADATA',
    'HAVE_CURRENT_DATA',
    'HAVE_ENOUGH_DATA'
]

"""
Módulo de reconocimiento emocional facial.

Este paquete contiene el adaptador de inferencia sobre DeepFace, el esquema
de etiquetas emocionales y el generador de muestras en modo degradado.
"""

from .deepface_adapter import DeepFaceExpressionAdapter, check_inference_support, models_loaded
from .degraded import make_degraded_sample
from .schema import (
    normalize_emotion,
    select_top_expression,
    STANDARD_EMOTIONS,
    MIN_CONFIDENCE
)

__all__ = [
    'DeepFaceExpressionAdapter',
    'check_inference_support',
    'models_loaded',
    'make_degraded_sample',
    'normalize_emotion',
    'select_top_expression',
    'STANDARD_EMOTIONS',
    'MIN_CONFIDENCE'
]

"""
Módulo de rutas de la API Flask.

Este paquete contiene los blueprints que definen los endpoints de la API
REST de Moodify.
"""

from .health import health_bp
from .spotify import spotify_bp
from .recommendations import recommendations_bp
from .emotion import emotion_bp

__all__ = ['health_bp', 'spotify_bp', 'recommendations_bp', 'emotion_bp']

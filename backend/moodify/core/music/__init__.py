"""
Módulo de recomendación musical.

Contiene el mapeo emoción -> género, el cliente del proveedor (Spotify) y
el orquestador que combina ambos con el almacén de registros.
"""

from .genres import (
    EMOTION_TO_GENRES,
    DEFAULT_GENRES,
    GenreVocabulary,
    candidate_genres,
    select_genre
)
from .recommender import RecommendationService
from .spotify_client import SpotifyClient

__all__ = [
    'EMOTION_TO_GENRES',
    'DEFAULT_GENRES',
    'GenreVocabulary',
    'candidate_genres',
    'select_genre',
    'RecommendationService',
    'SpotifyClient'
]

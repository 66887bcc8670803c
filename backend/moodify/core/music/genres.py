"""
Mapeo de emociones a géneros musicales.

Este módulo traduce una etiqueta emocional a un género semilla aceptado por
el proveedor (Spotify). La selección es aleatoria dentro del conjunto de
géneros preferidos para producir variedad entre peticiones repetidas de la
misma emoción.

También gestiona el vocabulario de géneros del proveedor: se consulta una
vez por proceso y, si la consulta falla, se usa una lista estática.
"""

import logging
import random
import threading
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Géneros preferidos por emoción (orden de preferencia)
EMOTION_TO_GENRES: Dict[str, List[str]] = {
    'happy': ['pop', 'dance', 'funk', 'disco', 'soul', 'gospel', 'latin', 'reggae'],
    'sad': ['blues', 'folk', 'country', 'acoustic', 'singer-songwriter', 'indie-folk'],
    'angry': ['rock', 'metal', 'punk', 'hardcore', 'alternative', 'grunge'],
    'surprised': ['electronic', 'jazz', 'funk', 'experimental', 'world-music'],
    'neutral': ['pop', 'indie', 'alternative', 'rock', 'folk'],
    'fearful': ['ambient', 'classical', 'new-age', 'chill', 'downtempo'],
    'disgusted': ['grunge', 'alternative', 'punk', 'industrial', 'metal'],
}

# Géneros genéricos cuando el vocabulario del proveedor no está disponible
DEFAULT_GENRES: List[str] = ['pop', 'rock', 'jazz', 'classical', 'electronic', 'hip-hop']

# Número de géneros del vocabulario usados como fallback sin afinidad emocional
FALLBACK_POOL_SIZE = 5


def candidate_genres(emotion: str, available_genres: Optional[List[str]]) -> List[str]:
    """
    Calcula el conjunto de géneros candidatos para una emoción.

    Args:
        emotion (str): Etiqueta emocional (case-insensitive)
        available_genres (List[str]): Vocabulario actual del proveedor

    Returns:
        List[str]: Intersección de preferidos y disponibles; si está vacía,
        los primeros géneros disponibles; si no hay vocabulario, DEFAULT_GENRES

    Examples:
        >>> candidate_genres('happy', ['pop', 'rock'])
        ['pop']

        >>> candidate_genres('HAPPY', ['rock'])
        ['rock']

        >>> candidate_genres('happy', [])
        ['pop', 'rock', 'jazz', 'classical', 'electronic', 'hip-hop']
    """
    if not available_genres:
        return DEFAULT_GENRES.copy()

    preferred = EMOTION_TO_GENRES.get((emotion or '').lower().strip(), [])
    available = set(available_genres)
    pool = [genre for genre in preferred if genre in available]

    if not pool:
        pool = list(available_genres[:FALLBACK_POOL_SIZE])

    return pool


def select_genre(emotion: str, available_genres: Optional[List[str]],
                 rng: Optional[random.Random] = None) -> str:
    """
    Elige un género semilla para la emoción, al azar entre los candidatos.

    Args:
        emotion (str): Etiqueta emocional
        available_genres (List[str]): Vocabulario actual del proveedor
        rng: Generador aleatorio (inyectable para tests)

    Returns:
        str: Género seleccionado
    """
    pool = candidate_genres(emotion, available_genres)
    return (rng or random).choice(pool)


class GenreVocabulary:
    """
    Caché de proceso del vocabulario de géneros del proveedor.

    Ciclo de vida: se puebla una sola vez con la primera consulta exitosa y
    nunca se invalida. Si la consulta falla se devuelve la lista estática
    sin cachearla, de modo que la siguiente petición vuelve a intentarlo.

    Example:
        >>> vocabulary = GenreVocabulary()
        >>> genres = vocabulary.get(lambda: client.get_available_genres(token))
    """

    def __init__(self, fallback: Optional[List[str]] = None):
        self._genres: Optional[List[str]] = None
        self._fallback = list(fallback or DEFAULT_GENRES)
        self._lock = threading.Lock()

    @property
    def is_populated(self) -> bool:
        return self._genres is not None

    def get(self, fetch: Callable[[], List[str]]) -> List[str]:
        """
        Devuelve el vocabulario, consultándolo si aún no está cacheado.

        Args:
            fetch: Función que consulta al proveedor y devuelve los géneros

        Returns:
            List[str]: Vocabulario cacheado, recién consultado o fallback
        """
        if self._genres is not None:
            return self._genres

        with self._lock:
            if self._genres is not None:
                return self._genres

            try:
                genres = fetch()
            except Exception as e:
                logger.warning(f"Error al consultar géneros disponibles, usando fallback: {e}")
                return self._fallback.copy()

            if not genres:
                logger.warning("El proveedor devolvió un vocabulario vacío, usando fallback")
                return self._fallback.copy()

            self._genres = list(genres)
            logger.info(f"Géneros disponibles: {self._genres[:10]} ... ({len(self._genres)} en total)")
            return self._genres

    def reset(self) -> None:
        """Vacía la caché (solo para tests)."""
        with self._lock:
            self._genres = None

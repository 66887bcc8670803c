"""
Orquestador de recomendaciones musicales por emoción.

Flujo de get_recommendations():
    1. Obtener credencial del proveedor (fatal si falla)
    2. Consultar el vocabulario de géneros (cacheado; fallback estático)
    3. Elegir un género para la emoción
    4. Crear la sesión emocional
    5. Consultar recomendaciones; si fallan, una búsqueda 'genre:<g>'
    6. Fallar si no hay pistas
    7. Guardar una recomendación por pista
    8. Devolver la sesión y las recomendaciones creadas

La credencial se solicita en cada petición; no hay caché de tokens en
este camino.
"""

import logging
import random
from typing import Dict, List, Optional

from ..errors import EmptyResultError, ProviderQueryError
from .genres import GenreVocabulary, select_genre

logger = logging.getLogger(__name__)

# Límite de pistas por consulta
DEFAULT_LIMIT = 10

# Confianza asumida cuando el cliente no la envía
DEFAULT_CONFIDENCE = 80

# Rango de la puntuación de afinidad (heurística de presentación)
MATCH_SCORE_RANGE = (80, 100)


class RecommendationService:
    """
    Orquestador de recomendaciones.

    Attributes:
        client: Cliente del proveedor (SpotifyClient)
        store: Almacén de registros (MemoryStore)
        vocabulary (GenreVocabulary): Caché de géneros del proveedor
        limit (int): Máximo de pistas por consulta
    """

    def __init__(self, client, store, vocabulary: Optional[GenreVocabulary] = None,
                 limit: int = DEFAULT_LIMIT, rng: Optional[random.Random] = None):
        self.client = client
        self.store = store
        self.vocabulary = vocabulary or GenreVocabulary()
        self.limit = limit
        self.rng = rng or random.Random()

    def get_recommendations(self, emotion: str, confidence: Optional[int] = None,
                            user_id: Optional[int] = None) -> Dict[str, any]:
        """
        Obtiene y persiste recomendaciones para una emoción.

        Args:
            emotion (str): Etiqueta emocional
            confidence (int): Confianza 0-100 (80 si no se indica)
            user_id (int): Propietario opcional de la sesión

        Returns:
            Dict con 'session', 'recommendations' y 'genre'

        Raises:
            ProviderAuthError: Si no se pudo obtener la credencial
            ProviderQueryError: Si fallaron la consulta y la búsqueda
            EmptyResultError: Si no se encontraron pistas
        """
        if confidence is None:
            confidence = DEFAULT_CONFIDENCE

        credential = self.client.request_access_token()
        token = credential['token']

        genres = self.vocabulary.get(lambda: self.client.get_available_genres(token))
        genre = select_genre(emotion, genres, self.rng)
        logger.info(f"Género seleccionado para '{emotion}': {genre}")

        session = self.store.create_emotion_session(
            {'emotion': emotion, 'confidence': confidence},
            user_id=user_id
        )

        tracks = [track for track in self._fetch_tracks(token, genre) if track]
        if not tracks:
            raise EmptyResultError()

        recommendations = [
            self.store.create_music_recommendation(self._to_record(track), session['id'])
            for track in tracks
        ]
        logger.info(
            f"Sesión {session['id']}: {len(recommendations)} recomendaciones ({genre})"
        )

        return {
            'session': session,
            'recommendations': recommendations,
            'genre': genre
        }

    def _fetch_tracks(self, token: str, genre: str) -> List[Dict]:
        try:
            return self.client.get_recommendations(token, genre, limit=self.limit)
        except ProviderQueryError as e:
            logger.warning(f"Falló la API de recomendaciones ({e}), probando búsqueda")

        try:
            return self.client.search_tracks(token, f"genre:{genre}", limit=self.limit)
        except ProviderQueryError as e:
            logger.error("Fallaron tanto las recomendaciones como la búsqueda")
            raise ProviderQueryError(
                "No se pudieron obtener recomendaciones de Spotify",
                detail=e.detail,
                status=e.status
            ) from e

    def _to_record(self, track: Dict) -> Dict:
        artist_name = _first_field(track.get('artists'), 'name')

        album = track.get('album')
        album_cover = _first_field(album.get('images') if isinstance(album, dict) else None, 'url')

        return {
            'trackId': track.get('id'),
            'trackName': track.get('name'),
            'artistName': artist_name or 'Unknown Artist',
            'albumCover': album_cover,
            'previewUrl': track.get('preview_url'),
            'matchScore': self.rng.randint(*MATCH_SCORE_RANGE)
        }


def _first_field(items, key: str) -> Optional[str]:
    """Campo `key` del primer elemento de una lista del proveedor, si tiene forma de objeto."""
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        return None
    return items[0].get(key)

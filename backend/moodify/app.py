"""
Aplicación principal del backend - Moodify.

Este módulo implementa la API REST Flask que conecta la detección facial de
emociones con las recomendaciones musicales de Spotify.

La API proporciona endpoints para:
- Autorización OAuth con Spotify
- Recomendaciones musicales a partir de una emoción
- Historial de sesiones emocionales
- Detección de emociones desde una imagen enviada
- Monitoreo de salud del servicio

IMPORTANTE: Los modelos de DeepFace NO se cargan al arrancar. Solo se
cargan la primera vez que se usa /api/emotions/detect.
"""

import logging
from datetime import datetime

from flask import Flask
from flask.json.provider import DefaultJSONProvider
from flask_cors import CORS

from . import __version__
from .config import load_config
from .core.music.genres import GenreVocabulary
from .core.music.recommender import RecommendationService
from .core.music.spotify_client import SpotifyClient
from .core.storage.memory_store import MemoryStore
from .routes import health_bp, spotify_bp, recommendations_bp, emotion_bp

# Configurar logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class MoodifyJSONProvider(DefaultJSONProvider):
    """Serializa fechas en ISO 8601 (el cliente las parsea con Date)."""

    @staticmethod
    def default(o):
        if isinstance(o, datetime):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def create_app(config=None):
    """
    Factory function para crear y configurar la aplicación Flask.

    Los colaboradores (almacén, cliente de Spotify, vocabulario de géneros,
    adaptador de inferencia) se guardan en app.config y pueden sustituirse
    desde `config`, lo que permite inyectar dobles en los tests.

    Args:
        config (dict, optional): Configuración custom. Claves reconocidas,
                                 además de las de load_config():
                                 RECORD_STORE, SPOTIFY_CLIENT,
                                 GENRE_VOCABULARY, EXPRESSION_ADAPTER.

    Returns:
        Flask: Aplicación Flask configurada y lista para usar

    Example:
        >>> app = create_app({'DEBUG': True})
        >>> app.run(port=5000)
    """
    app = Flask(__name__)

    # Configuración del entorno y overrides
    app.config.update(load_config())
    app.config['RECORD_STORE'] = None
    app.config['SPOTIFY_CLIENT'] = None
    app.config['GENRE_VOCABULARY'] = None
    app.config['EXPRESSION_ADAPTER'] = None
    if config:
        app.config.update(config)

    app.json = MoodifyJSONProvider(app)

    # Habilitar CORS para permitir requests desde el frontend
    CORS(app)

    if app.config['RECORD_STORE'] is None:
        app.config['RECORD_STORE'] = MemoryStore()

    if app.config['SPOTIFY_CLIENT'] is None:
        app.config['SPOTIFY_CLIENT'] = SpotifyClient(
            client_id=app.config.get('SPOTIFY_CLIENT_ID'),
            client_secret=app.config.get('SPOTIFY_CLIENT_SECRET'),
            redirect_uri=app.config.get('SPOTIFY_REDIRECT_URI'),
            market=app.config.get('SPOTIFY_MARKET', 'US')
        )

    if app.config['GENRE_VOCABULARY'] is None:
        app.config['GENRE_VOCABULARY'] = GenreVocabulary()

    app.config['RECOMMENDATION_SERVICE'] = RecommendationService(
        client=app.config['SPOTIFY_CLIENT'],
        store=app.config['RECORD_STORE'],
        vocabulary=app.config['GENRE_VOCABULARY'],
        limit=app.config.get('RECOMMENDATION_LIMIT', 10)
    )

    if not app.config['SPOTIFY_CLIENT'].is_configured:
        logger.warning("Credenciales de Spotify no configuradas: las recomendaciones fallarán")

    # El adaptador de inferencia se crea la primera vez que se usa
    logger.info("Sistema iniciado (carga perezosa de modelos activa)")

    # Registrar blueprints
    app.register_blueprint(health_bp)
    app.register_blueprint(spotify_bp)
    app.register_blueprint(recommendations_bp)
    app.register_blueprint(emotion_bp)

    logger.info("Blueprints registrados")

    return app


def main():
    """
    Función principal para ejecutar el servidor de desarrollo.

    Para producción, usar un servidor WSGI como Gunicorn:
        $ gunicorn 'moodify.app:create_app()'
    """
    print("=" * 70)
    print(f"Backend Moodify - Recomendaciones musicales por emoción v{__version__}")
    print("=" * 70)

    app = create_app()

    print("\nEndpoints disponibles:")
    print("  GET  /health                                - Verificación de estado")
    print("  GET  /api/spotify/auth                      - URL de autorización de Spotify")
    print("  GET  /api/spotify/callback?code=            - Intercambio de código OAuth")
    print("  POST /api/recommendations                   - Recomendaciones para una emoción")
    print("  GET  /api/emotions/recent                   - Sesiones emocionales recientes")
    print("  POST /api/emotions                          - Registrar una emoción")
    print("  GET  /api/emotions/<id>/recommendations     - Recomendaciones de una sesión")
    print("  POST /api/emotions/detect                   - Detectar emoción desde imagen")
    print("\n" + "=" * 70)
    print(f"Servidor iniciando en http://{app.config['HOST']}:{app.config['PORT']}")
    print("=" * 70 + "\n")

    app.run(
        host=app.config['HOST'],
        port=app.config['PORT'],
        debug=app.config['DEBUG']
    )


if __name__ == "__main__":
    main()

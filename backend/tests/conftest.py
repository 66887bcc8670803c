"""
Fixtures comunes de los tests.

Spotify se sustituye por un cliente falso y DeepFace por una función de
análisis inyectada, de modo que ningún test hace peticiones HTTP reales ni
carga TensorFlow.
"""

import pytest

from moodify.app import create_app
from moodify.core.emotion import deepface_adapter
from moodify.core.errors import ProviderConfigError
from moodify.core.music.genres import GenreVocabulary
from moodify.core.storage.memory_store import MemoryStore
from moodify.core.utils.metrics import reset_metrics


def make_track(index: int, artist='Artista', image=True, preview=True) -> dict:
    """Pista con la forma que devuelve la API de Spotify."""
    return {
        'id': f'track-{index}',
        'name': f'Canción {index}',
        'artists': [{'name': f'{artist} {index}'}] if artist else [],
        'album': {'images': [{'url': f'https://img.example/{index}.jpg'}] if image else []},
        'preview_url': f'https://preview.example/{index}.mp3' if preview else None
    }


def make_deepface_result(scores=None, region=None, face_confidence=0.93) -> list:
    """Resultado de DeepFace.analyze para un rostro."""
    scores = scores or {
        'angry': 1.2, 'disgust': 0.1, 'fear': 2.5, 'happy': 87.4,
        'sad': 3.3, 'surprise': 0.8, 'neutral': 4.7
    }
    return [{
        'emotion': scores,
        'dominant_emotion': max(scores, key=scores.get),
        'region': region or {'x': 40, 'y': 30, 'w': 120, 'h': 140},
        'face_confidence': face_confidence
    }]


class FakeSpotifyClient:
    """
    Doble del SpotifyClient.

    Cada llamada se registra en `calls`. Los errores se configuran por
    atributo (auth_error, recommendations_error, search_error, genres_error).
    """

    def __init__(self, tracks=None, search_tracks=None, genres=None, configured=True):
        self.tracks = tracks if tracks is not None else [make_track(i) for i in range(3)]
        self.search_results = search_tracks if search_tracks is not None else []
        self.genres = genres if genres is not None else ['pop', 'rock', 'jazz', 'blues', 'metal']
        self.configured = configured
        self.auth_error = None
        self.genres_error = None
        self.recommendations_error = None
        self.search_error = None
        self.exchange_error = None
        self.calls = []

    @property
    def is_configured(self):
        return self.configured

    def build_authorize_url(self):
        if not self.configured:
            raise ProviderConfigError()
        return 'https://accounts.spotify.com/authorize?client_id=fake'

    def exchange_code(self, code):
        self.calls.append(('exchange_code', code))
        if not self.configured:
            raise ProviderConfigError()
        if self.exchange_error:
            raise self.exchange_error
        return {'accessToken': 'user-token', 'refreshToken': 'refresh', 'expiresIn': 3600}

    def request_access_token(self):
        self.calls.append(('request_access_token',))
        if not self.configured:
            raise ProviderConfigError()
        if self.auth_error:
            raise self.auth_error
        return {'token': 'app-token', 'expires_at': None}

    def get_available_genres(self, token):
        self.calls.append(('get_available_genres', token))
        if self.genres_error:
            raise self.genres_error
        return list(self.genres)

    def get_recommendations(self, token, genre, limit=10):
        self.calls.append(('get_recommendations', genre, limit))
        if self.recommendations_error:
            raise self.recommendations_error
        return list(self.tracks)

    def search_tracks(self, token, query, limit=10):
        self.calls.append(('search_tracks', query, limit))
        if self.search_error:
            raise self.search_error
        return list(self.search_results)

    def called(self, name):
        return [call for call in self.calls if call[0] == name]


class FakeAdapter:
    """Adaptador de inferencia con resultados programados."""

    def __init__(self, results=None, error=None):
        self.results = list(results or [])
        self.error = error
        self.frames = []

    @property
    def models_loaded(self):
        return True

    def load_models(self):
        pass

    def infer(self, frame):
        self.frames.append(frame)
        if self.error:
            raise self.error
        return self.results.pop(0) if self.results else None


@pytest.fixture(autouse=True)
def clean_global_state():
    """Reinicia métricas y el estado de carga de modelos entre tests."""
    reset_metrics()
    deepface_adapter.reset_model_state()
    yield
    reset_metrics()
    deepface_adapter.reset_model_state()


@pytest.fixture
def spotify():
    return FakeSpotifyClient()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app(spotify, store):
    app = create_app({
        'TESTING': True,
        'RECORD_STORE': store,
        'SPOTIFY_CLIENT': spotify,
        'GENRE_VOCABULARY': GenreVocabulary(),
        'INCLUDE_METRICS': False
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()

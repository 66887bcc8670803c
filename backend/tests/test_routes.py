"""
Tests de la API Flask con el cliente de pruebas.
"""

import io
from contextlib import contextmanager

import cv2
import numpy as np
import pytest

from conftest import FakeAdapter, make_track
from moodify.app import create_app
from moodify.core.errors import (
    CapabilityError,
    InferenceTimeoutError,
    ProviderAuthError,
    ProviderQueryError
)
from moodify.core.music.genres import GenreVocabulary
from moodify.core.utils.metrics import PerformanceMetrics
from moodify.routes import recommendations as recommendations_routes

SAMPLE = {
    'emotion': 'happy',
    'confidence': 87,
    'expressions': {'happy': 87, 'neutral': 5},
    'boundingBox': {'x': 20, 'y': 15, 'width': 40, 'height': 30},
    'degraded': False
}


def png_bytes(width=80, height=60):
    success, buffer = cv2.imencode('.png', np.zeros((height, width, 3), dtype=np.uint8))
    assert success
    return buffer.tobytes()


def post_image(client, data):
    return client.post(
        '/api/emotions/detect',
        data={'image': (io.BytesIO(data), 'frame.png')},
        content_type='multipart/form-data'
    )


# ===== SALUD =====

def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.json['status'] == 'ok'
    assert response.json['spotifyConfigured'] is True
    assert response.json['modelsLoaded'] is False


# ===== SPOTIFY =====

def test_auth_returns_authorize_url(client):
    response = client.get('/api/spotify/auth')

    assert response.status_code == 200
    assert response.json['authUrl'].startswith('https://accounts.spotify.com/authorize')


def test_auth_without_client_id_is_500(client, spotify):
    spotify.configured = False

    assert client.get('/api/spotify/auth').status_code == 500


def test_callback_exchanges_code(client, spotify):
    response = client.get('/api/spotify/callback?code=abc')

    assert response.status_code == 200
    assert response.json == {'accessToken': 'user-token', 'refreshToken': 'refresh', 'expiresIn': 3600}
    assert spotify.called('exchange_code') == [('exchange_code', 'abc')]


def test_callback_without_code_is_400(client):
    assert client.get('/api/spotify/callback').status_code == 400


def test_callback_rejected_exchange_is_400(client, spotify):
    spotify.exchange_error = ProviderAuthError('rechazado', detail={'error': 'invalid_grant'})

    response = client.get('/api/spotify/callback?code=caducado')

    assert response.status_code == 400
    assert response.json['error'] == {'error': 'invalid_grant'}


# ===== RECOMENDACIONES =====

def test_recommendations_end_to_end(client):
    response = client.post('/api/recommendations', json={'emotion': 'happy', 'confidence': 90})

    assert response.status_code == 200
    session = response.json['session']
    recommendations = response.json['recommendations']
    assert session['emotion'] == 'happy'
    assert session['confidence'] == 90
    assert isinstance(session['timestamp'], str)
    assert len(recommendations) == 3
    assert all(r['sessionId'] == session['id'] for r in recommendations)
    assert all(80 <= r['matchScore'] <= 100 for r in recommendations)


def test_recommendations_without_emotion_is_400(client, spotify):
    response = client.post('/api/recommendations', json={'confidence': 90})

    assert response.status_code == 400
    assert spotify.calls == []


@pytest.mark.parametrize('body', [
    {'emotion': 'happy', 'confidence': 'alta'},
    {'emotion': 'happy', 'confidence': 101},
    {'emotion': '   '},
    ['happy'],
])
def test_recommendations_invalid_body_is_400(client, store, body):
    response = client.post('/api/recommendations', json=body)

    assert response.status_code == 400
    assert store.get_recent_emotion_sessions() == []


def test_recommendations_provider_failure_is_400(client, spotify):
    spotify.recommendations_error = ProviderQueryError('404', status=404)
    spotify.search_error = ProviderQueryError('502', detail='Bad Gateway', status=502)

    response = client.post('/api/recommendations', json={'emotion': 'sad'})

    assert response.status_code == 400
    assert response.json['error'] == 'Bad Gateway'
    assert response.json['status'] == 502


def test_recommendations_empty_result_is_400(client, spotify):
    spotify.tracks = []

    response = client.post('/api/recommendations', json={'emotion': 'angry'})

    assert response.status_code == 400
    assert 'pistas' in response.json['message']


def test_recommendations_auth_failure_is_500(client, spotify):
    spotify.auth_error = ProviderAuthError()

    assert client.post('/api/recommendations', json={'emotion': 'happy'}).status_code == 500


def test_recommendations_storage_failure_is_500(client, store, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError('disco lleno')

    monkeypatch.setattr(store, 'create_emotion_session', broken)

    assert client.post('/api/recommendations', json={'emotion': 'happy'}).status_code == 500


def test_recommendations_use_search_fallback(client, spotify):
    spotify.recommendations_error = ProviderQueryError('404', status=404)
    spotify.search_results = [make_track(5)]

    response = client.post('/api/recommendations', json={'emotion': 'neutral', 'confidence': 55})

    assert response.status_code == 200
    assert [r['trackId'] for r in response.json['recommendations']] == ['track-5']


def test_processing_time_is_reported_when_metrics_enabled(spotify, store):
    app = create_app({
        'TESTING': True,
        'RECORD_STORE': store,
        'SPOTIFY_CLIENT': spotify,
        'GENRE_VOCABULARY': GenreVocabulary(),
        'INCLUDE_METRICS': True
    })
    client = app.test_client()

    response = client.post('/api/recommendations', json={'emotion': 'happy'})

    assert response.json['processingTimeMs'] >= 0
    assert 'recommendation_fetch' in client.get('/health').json['metrics']


def test_processing_time_belongs_to_the_request(spotify, store, monkeypatch):
    class InterleavedMetrics(PerformanceMetrics):
        @contextmanager
        def measure(self, stage_name, metadata=None):
            with super().measure(stage_name, metadata) as timing:
                yield timing
            # Otra petición termina justo después con una duración mucho mayor
            self.measurements[stage_name].append(60.0)

    metrics = InterleavedMetrics()
    monkeypatch.setattr(recommendations_routes, 'get_metrics', lambda: metrics)
    app = create_app({
        'TESTING': True,
        'RECORD_STORE': store,
        'SPOTIFY_CLIENT': spotify,
        'GENRE_VOCABULARY': GenreVocabulary(),
        'INCLUDE_METRICS': True
    })

    response = app.test_client().post('/api/recommendations', json={'emotion': 'happy'})

    assert response.status_code == 200
    assert response.json['processingTimeMs'] < 60000


# ===== SESIONES EMOCIONALES =====

def test_record_and_list_recent_emotions(client):
    for emotion in ['happy', 'sad']:
        response = client.post('/api/emotions', json={'emotion': emotion, 'confidence': 70})
        assert response.status_code == 200

    recent = client.get('/api/emotions/recent').json

    assert [s['emotion'] for s in recent] == ['sad', 'happy']


def test_record_emotion_requires_confidence(client, store):
    response = client.post('/api/emotions', json={'emotion': 'happy'})

    assert response.status_code == 400
    assert store.get_recent_emotion_sessions() == []


def test_recent_emotions_are_capped_at_ten(client):
    for i in range(12):
        client.post('/api/emotions', json={'emotion': 'neutral', 'confidence': i})

    assert len(client.get('/api/emotions/recent').json) == 10


def test_session_recommendations(client):
    session_id = client.post('/api/recommendations', json={'emotion': 'happy'}).json['session']['id']

    response = client.get(f'/api/emotions/{session_id}/recommendations')

    assert response.status_code == 200
    assert len(response.json) == 3
    assert client.get('/api/emotions/999/recommendations').status_code == 404


# ===== DETECCIÓN DESDE IMAGEN =====

def test_detect_returns_sample_and_normalized_box(app, client):
    adapter = FakeAdapter(results=[SAMPLE])
    app.config['EXPRESSION_ADAPTER'] = adapter

    response = post_image(client, png_bytes(80, 60))

    assert response.status_code == 200
    assert response.json['faceDetected'] is True
    assert response.json['sample']['emotion'] == 'happy'
    assert response.json['normalizedBox'] == pytest.approx(
        {'left': 25.0, 'top': 25.0, 'width': 50.0, 'height': 50.0}
    )
    assert adapter.frames[0].shape == (60, 80, 3)


def test_detect_without_face(app, client):
    app.config['EXPRESSION_ADAPTER'] = FakeAdapter(results=[None])

    response = post_image(client, png_bytes())

    assert response.status_code == 200
    assert response.json == {'faceDetected': False, 'sample': None}


def test_detect_requires_image(client):
    assert client.post('/api/emotions/detect', data={}).status_code == 400


def test_detect_rejects_undecodable_image(app, client):
    app.config['EXPRESSION_ADAPTER'] = FakeAdapter(results=[SAMPLE])

    assert post_image(client, b'no es una imagen').status_code == 400


def test_detect_capability_error_is_503(app, client):
    app.config['EXPRESSION_ADAPTER'] = FakeAdapter(error=CapabilityError())

    assert post_image(client, png_bytes()).status_code == 503


def test_detect_timeout_is_504(app, client):
    app.config['EXPRESSION_ADAPTER'] = FakeAdapter(error=InferenceTimeoutError())

    assert post_image(client, png_bytes()).status_code == 504

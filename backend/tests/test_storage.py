"""
Tests del almacén de registros en memoria.
"""

import threading
from datetime import datetime

from moodify.core.storage.memory_store import MemoryStore


def test_session_ids_increase_and_are_not_reused():
    store = MemoryStore()
    ids = [store.create_emotion_session({'emotion': 'happy', 'confidence': 90})['id'] for _ in range(3)]

    assert ids == [1, 2, 3]
    assert store.get_emotion_session(2)['emotion'] == 'happy'
    assert store.get_emotion_session(99) is None


def test_session_has_timestamp_and_no_owner():
    session = MemoryStore().create_emotion_session({'emotion': 'sad', 'confidence': 40})

    assert isinstance(session['timestamp'], datetime)
    assert session['userId'] is None


def test_recent_sessions_are_newest_first_and_capped():
    store = MemoryStore()
    for i in range(12):
        store.create_emotion_session({'emotion': 'neutral', 'confidence': i})

    recent = store.get_recent_emotion_sessions()

    assert len(recent) == 10
    assert [s['id'] for s in recent] == list(range(12, 2, -1))
    timestamps = [s['timestamp'] for s in recent]
    assert timestamps == sorted(timestamps, reverse=True)


def test_recent_sessions_filter_by_user():
    store = MemoryStore()
    user = store.create_user('ana', 'secreto')
    store.create_emotion_session({'emotion': 'happy', 'confidence': 90}, user_id=user['id'])
    store.create_emotion_session({'emotion': 'sad', 'confidence': 50})

    recent = store.get_recent_emotion_sessions(user['id'])

    assert [s['emotion'] for s in recent] == ['happy']


def test_returned_records_are_copies():
    store = MemoryStore()
    session = store.create_emotion_session({'emotion': 'happy', 'confidence': 90})
    session['emotion'] = 'sad'

    assert store.get_emotion_session(session['id'])['emotion'] == 'happy'


def test_recommendation_optional_fields_are_nulled():
    store = MemoryStore()
    record = store.create_music_recommendation({
        'trackId': 't1',
        'trackName': 'Canción',
        'artistName': 'Artista',
        'albumCover': '',
        'previewUrl': None
    }, session_id=4)

    assert record['sessionId'] == 4
    assert record['albumCover'] is None
    assert record['previewUrl'] is None
    assert record['matchScore'] is None
    assert store.get_recommendations_by_session(4) == [record]
    assert store.get_recommendations_by_session(5) == []


def test_user_tokens_are_updated():
    store = MemoryStore()
    user = store.create_user('ana', 'secreto')

    store.update_user_spotify_tokens(user['id'], 'acc', 'ref', 3600)
    updated = store.get_user_by_username('ana')

    assert updated['spotifyAccessToken'] == 'acc'
    assert updated['spotifyRefreshToken'] == 'ref'
    assert updated['spotifyTokenExpiry'] > datetime.now()
    assert store.get_user(user['id']) == updated
    assert store.get_user_by_username('nadie') is None


def test_concurrent_creations_get_unique_ids():
    store = MemoryStore()

    def create_many():
        for _ in range(50):
            store.create_emotion_session({'emotion': 'happy', 'confidence': 90})

    threads = [threading.Thread(target=create_many) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    ids = [s['id'] for s in store.get_recent_emotion_sessions(limit=500)]
    assert sorted(ids) == list(range(1, 201))

"""
Almacén de registros en memoria.

Guarda usuarios, sesiones emocionales y recomendaciones musicales en
diccionarios indexados por identificadores enteros crecientes. Cada tipo
de entidad tiene su propio contador y los identificadores nunca se
reutilizan. Cada creación es un incremento-e-inserción atómico bajo un
lock, por lo que las peticiones concurrentes pueden intercalarse sin
escrituras parciales.

La duración de los datos es la del proceso.
"""

import threading
from datetime import datetime, timedelta
from typing import Dict, List, Optional


class MemoryStore:
    """
    Almacén en memoria de usuarios, sesiones y recomendaciones.

    Los registros se devuelven como copias: una vez creados no se mutan.
    """

    def __init__(self):
        self._users: Dict[int, Dict] = {}
        self._emotion_sessions: Dict[int, Dict] = {}
        self._music_recommendations: Dict[int, Dict] = {}
        self._next_user_id = 1
        self._next_session_id = 1
        self._next_recommendation_id = 1
        self._lock = threading.Lock()

    # ===== USUARIOS =====

    def create_user(self, username: str, password: str) -> Dict:
        with self._lock:
            user_id = self._next_user_id
            self._next_user_id += 1
            user = {
                'id': user_id,
                'username': username,
                'password': password,
                'spotifyAccessToken': None,
                'spotifyRefreshToken': None,
                'spotifyTokenExpiry': None
            }
            self._users[user_id] = user
            return dict(user)

    def get_user(self, user_id: int) -> Optional[Dict]:
        user = self._users.get(user_id)
        return dict(user) if user else None

    def get_user_by_username(self, username: str) -> Optional[Dict]:
        for user in list(self._users.values()):
            if user['username'] == username:
                return dict(user)
        return None

    def update_user_spotify_tokens(self, user_id: int, access_token: str,
                                   refresh_token: str, expires_in: int) -> None:
        """Guarda los tokens de Spotify de un usuario (sin efecto si no existe)."""
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return
            self._users[user_id] = {
                **user,
                'spotifyAccessToken': access_token,
                'spotifyRefreshToken': refresh_token,
                'spotifyTokenExpiry': datetime.now() + timedelta(seconds=expires_in)
            }

    # ===== SESIONES EMOCIONALES =====

    def create_emotion_session(self, data: Dict, user_id: Optional[int] = None) -> Dict:
        """
        Crea una sesión emocional.

        Args:
            data: Diccionario con 'emotion' y 'confidence'
            user_id: Propietario opcional

        Returns:
            Dict: Sesión con 'id', 'userId', 'emotion', 'confidence', 'timestamp'
        """
        with self._lock:
            session_id = self._next_session_id
            self._next_session_id += 1
            session = {
                'id': session_id,
                'userId': user_id or data.get('userId'),
                'emotion': data['emotion'],
                'confidence': data['confidence'],
                'timestamp': datetime.now()
            }
            self._emotion_sessions[session_id] = session
            return dict(session)

    def get_emotion_session(self, session_id: int) -> Optional[Dict]:
        session = self._emotion_sessions.get(session_id)
        return dict(session) if session else None

    def get_recent_emotion_sessions(self, user_id: Optional[int] = None, limit: int = 10) -> List[Dict]:
        """
        Devuelve las sesiones más recientes, opcionalmente de un usuario.

        Orden: timestamp descendente (a igualdad, la creada después primero).
        """
        sessions = [
            s for s in list(self._emotion_sessions.values())
            if user_id is None or s['userId'] == user_id
        ]
        sessions.sort(key=lambda s: (s['timestamp'], s['id']), reverse=True)
        return [dict(s) for s in sessions[:max(0, limit)]]

    # ===== RECOMENDACIONES =====

    def create_music_recommendation(self, data: Dict, session_id: int) -> Dict:
        """
        Crea una recomendación musical asociada a una sesión.

        Los campos opcionales vacíos ('albumCover', 'previewUrl',
        'matchScore') se guardan como None.
        """
        with self._lock:
            recommendation_id = self._next_recommendation_id
            self._next_recommendation_id += 1
            recommendation = {
                'id': recommendation_id,
                'sessionId': session_id,
                'trackId': data['trackId'],
                'trackName': data['trackName'],
                'artistName': data['artistName'],
                'albumCover': data.get('albumCover') or None,
                'previewUrl': data.get('previewUrl') or None,
                'matchScore': data.get('matchScore')
            }
            self._music_recommendations[recommendation_id] = recommendation
            return dict(recommendation)

    def get_recommendations_by_session(self, session_id: int) -> List[Dict]:
        return [
            dict(r) for r in list(self._music_recommendations.values())
            if r['sessionId'] == session_id
        ]

"""
Cliente HTTP mínimo de la API de Spotify.

Cubre únicamente los endpoints que usa el sistema:
    - Autorización OAuth (URL de login e intercambio de código)
    - Credencial de aplicación (client credentials)
    - Vocabulario de géneros semilla
    - Recomendaciones por género y búsqueda de pistas

Los errores de red y las respuestas no-2xx se traducen a la taxonomía de
moodify.core.errors; el cliente nunca reintenta por sí mismo.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from urllib.parse import urlencode

import requests

from ..errors import ProviderAuthError, ProviderConfigError, ProviderQueryError

logger = logging.getLogger(__name__)

SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE = "https://api.spotify.com/v1"

DEFAULT_REDIRECT_URI = "http://localhost:5000/api/spotify/callback"

OAUTH_SCOPES = (
    "user-read-private user-read-email streaming "
    "user-read-playback-state user-modify-playback-state"
)


class SpotifyClient:
    """
    Cliente de Spotify basado en requests.

    Attributes:
        client_id (str): Client id de la aplicación
        client_secret (str): Client secret de la aplicación
        redirect_uri (str): URI de redirección OAuth
        market (str): Mercado para las consultas de catálogo
        timeout (float): Timeout de cada petición HTTP en segundos
    """

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        redirect_uri: str = DEFAULT_REDIRECT_URI,
        market: str = "US",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.client_id = (client_id or "").strip()
        self.client_secret = (client_secret or "").strip()
        self.redirect_uri = redirect_uri or DEFAULT_REDIRECT_URI
        self.market = (market or "US").upper()
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    # ===== OAUTH =====

    def build_authorize_url(self) -> str:
        """
        Construye la URL de autorización de Spotify.

        Raises:
            ProviderConfigError: Si no hay client id configurado
        """
        if not self.client_id:
            raise ProviderConfigError("Client ID de Spotify no configurado")

        params = {
            'response_type': 'code',
            'client_id': self.client_id,
            'scope': OAUTH_SCOPES,
            'redirect_uri': self.redirect_uri
        }
        return f"{SPOTIFY_AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> Dict[str, any]:
        """
        Intercambia un código de autorización por tokens de usuario.

        Returns:
            Dict con 'accessToken', 'refreshToken' y 'expiresIn'

        Raises:
            ProviderConfigError: Si faltan las credenciales
            ProviderAuthError: Si Spotify rechaza el intercambio
        """
        self._require_credentials()

        data = self._token_request({
            'grant_type': 'authorization_code',
            'code': code,
            'redirect_uri': self.redirect_uri
        })

        return {
            'accessToken': data.get('access_token'),
            'refreshToken': data.get('refresh_token'),
            'expiresIn': data.get('expires_in')
        }

    def request_access_token(self) -> Dict[str, any]:
        """
        Obtiene una credencial de aplicación (client credentials flow).

        Returns:
            Dict con 'token' y 'expires_at' (datetime)

        Raises:
            ProviderConfigError: Si faltan las credenciales
            ProviderAuthError: Si Spotify rechaza la petición
        """
        self._require_credentials()

        logger.info(f"Solicitando token de Spotify (client id: {self.client_id[:8]}...)")
        data = self._token_request({'grant_type': 'client_credentials'})

        token = data.get('access_token')
        if not token:
            raise ProviderAuthError("Autenticación con Spotify fallida: respuesta sin access_token", detail=data)

        expires_in = int(data.get('expires_in') or 3600)
        logger.info(f"Token de Spotify obtenido (expira en {expires_in} s)")
        return {
            'token': token,
            'expires_at': datetime.now() + timedelta(seconds=expires_in)
        }

    # ===== CATÁLOGO =====

    def get_available_genres(self, token: str) -> List[str]:
        """Devuelve el vocabulario de géneros semilla del proveedor."""
        data = self._api_get('/recommendations/available-genre-seeds', token)
        return data.get('genres') or []

    def get_recommendations(self, token: str, genre: str, limit: int = 10) -> List[Dict]:
        """Consulta el endpoint de recomendaciones sembrado por un género."""
        data = self._api_get('/recommendations', token, {
            'seed_genres': genre,
            'limit': limit,
            'market': self.market
        })
        return data.get('tracks') or []

    def search_tracks(self, token: str, query: str, limit: int = 10) -> List[Dict]:
        """Busca pistas por texto libre (por ejemplo 'genre:rock')."""
        data = self._api_get('/search', token, {
            'q': query,
            'type': 'track',
            'limit': limit,
            'market': self.market
        })
        return (data.get('tracks') or {}).get('items') or []

    # ===== INTERNOS =====

    def _require_credentials(self) -> None:
        if not self.is_configured:
            logger.error("Faltan SPOTIFY_CLIENT_ID o SPOTIFY_CLIENT_SECRET")
            raise ProviderConfigError(
                "Credenciales de Spotify no configuradas: faltan SPOTIFY_CLIENT_ID o SPOTIFY_CLIENT_SECRET"
            )

    def _token_request(self, form: Dict[str, str]) -> Dict[str, any]:
        try:
            response = self.session.post(
                SPOTIFY_TOKEN_URL,
                data=form,
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ProviderAuthError(f"Autenticación con Spotify fallida: {e}", detail=str(e)) from e

        data = _json_or_text(response)
        if not response.ok or not isinstance(data, dict):
            if isinstance(data, dict):
                reason = data.get('error_description') or data.get('error')
            else:
                reason = data
            logger.error(f"Error de token de Spotify (status {response.status_code}): {data}")
            raise ProviderAuthError(
                f"Autenticación con Spotify fallida: {reason} (status {response.status_code})",
                detail=data
            )
        return data

    def _api_get(self, path: str, token: str, params: Optional[Dict] = None) -> Dict:
        try:
            response = self.session.get(
                f"{SPOTIFY_API_BASE}{path}",
                params=params,
                headers={'Authorization': f"Bearer {token}"},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ProviderQueryError(f"Error de red al consultar {path}: {e}", detail=str(e)) from e

        logger.debug(f"Spotify {path} -> {response.status_code}")
        if not response.ok:
            raise ProviderQueryError(
                f"{path} respondió con status {response.status_code}",
                detail=response.text,
                status=response.status_code
            )

        data = _json_or_text(response)
        return data if isinstance(data, dict) else {}


def _json_or_text(response):
    try:
        return response.json()
    except ValueError:
        return response.text

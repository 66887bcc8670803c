"""
Configuración del backend a partir de variables de entorno.

Las variables se leen de un fichero .env si existe (python-dotenv) y del
entorno del proceso. create_app() copia este diccionario en app.config.
"""

import os
from typing import Dict, Optional

from dotenv import load_dotenv

from .core.music.spotify_client import DEFAULT_REDIRECT_URI

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    try:
        return int(value) if value else default
    except ValueError:
        return default


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def load_config() -> Dict[str, any]:
    """
    Lee la configuración reconocida del entorno.

    Returns:
        Dict con las claves de configuración de la aplicación
    """
    return {
        'SPOTIFY_CLIENT_ID': _first_env('SPOTIFY_CLIENT_ID', 'VITE_SPOTIFY_CLIENT_ID'),
        'SPOTIFY_CLIENT_SECRET': _first_env('SPOTIFY_CLIENT_SECRET', 'VITE_SPOTIFY_CLIENT_SECRET'),
        'SPOTIFY_REDIRECT_URI': os.getenv('SPOTIFY_REDIRECT_URI', DEFAULT_REDIRECT_URI),
        'SPOTIFY_MARKET': os.getenv('SPOTIFY_MARKET', 'US'),
        'RECOMMENDATION_LIMIT': _env_int('RECOMMENDATION_LIMIT', 10),
        'DEGRADED_MODE': _env_flag('DEGRADED_MODE', True),
        'INCLUDE_METRICS': _env_flag('INCLUDE_METRICS', False),
        'HOST': os.getenv('HOST', '0.0.0.0'),
        'PORT': _env_int('PORT', 5000),
        'DEBUG': _env_flag('DEBUG', False),
    }

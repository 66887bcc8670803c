"""
Blueprint para la autorización OAuth con Spotify.
"""

from flask import Blueprint, current_app, jsonify, request

from ..core.errors import ProviderAuthError, ProviderConfigError

spotify_bp = Blueprint('spotify', __name__, url_prefix='/api/spotify')


@spotify_bp.route('/auth', methods=['GET'])
def spotify_auth():
    """
    Devuelve la URL de autorización de Spotify.

    Response:
        {"authUrl": "https://accounts.spotify.com/authorize?..."}

    Error cases:
        - 500: Client id no configurado
    """
    client = current_app.config['SPOTIFY_CLIENT']
    try:
        return jsonify({'authUrl': client.build_authorize_url()}), 200
    except ProviderConfigError as e:
        return jsonify({'message': e.message}), 500


@spotify_bp.route('/callback', methods=['GET'])
def spotify_callback():
    """
    Intercambia el código de autorización por tokens de usuario.

    Query Parameters:
        code (str): Código devuelto por Spotify

    Response:
        {"accessToken": "...", "refreshToken": "...", "expiresIn": 3600}

    Error cases:
        - 400: Falta el código o Spotify rechaza el intercambio
        - 500: Credenciales no configuradas o error inesperado
    """
    code = request.args.get('code')
    if not code:
        return jsonify({'message': 'Falta el código de autorización'}), 400

    client = current_app.config['SPOTIFY_CLIENT']
    try:
        tokens = client.exchange_code(code)
    except ProviderConfigError as e:
        return jsonify({'message': e.message}), 500
    except ProviderAuthError as e:
        current_app.logger.warning(f"Intercambio de código rechazado: {e}")
        return jsonify({
            'message': 'No se pudo intercambiar el código por un token',
            'error': e.detail
        }), 400
    except Exception as e:
        current_app.logger.error(f"Error en /api/spotify/callback: {e}", exc_info=True)
        return jsonify({'message': 'Error al procesar el callback de Spotify'}), 500

    return jsonify(tokens), 200

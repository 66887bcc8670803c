"""
Blueprint para endpoints de salud y monitoreo de la API.
"""

from flask import Blueprint, current_app, jsonify

from .. import __version__
from ..core.emotion.deepface_adapter import models_loaded
from ..core.utils.metrics import get_metrics

health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Endpoint de verificación de estado del servicio.

    Example:
        GET /health

        Response:
        {
            "status": "ok",
            "version": "0.4.0",
            "spotifyConfigured": true,
            "modelsLoaded": false
        }
    """
    response = {
        'status': 'ok',
        'version': __version__,
        'spotifyConfigured': current_app.config['SPOTIFY_CLIENT'].is_configured,
        'modelsLoaded': models_loaded()
    }

    if current_app.config.get('INCLUDE_METRICS', False):
        response['metrics'] = get_metrics().get_statistics()

    return jsonify(response), 200

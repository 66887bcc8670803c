"""
Blueprint para las recomendaciones musicales por emoción.
"""

from flask import Blueprint, current_app, jsonify, request

from ..core.errors import EmptyResultError, ProviderAuthError, ProviderQueryError, ValidationError
from ..core.utils.metrics import get_metrics
from .validation import parse_recommendation_request

recommendations_bp = Blueprint('recommendations', __name__)


@recommendations_bp.route('/api/recommendations', methods=['POST'])
def get_recommendations():
    """
    Obtiene recomendaciones de Spotify para una emoción.

    JSON Body:
        emotion (str): Emoción detectada (obligatoria)
        confidence (int): Confianza 0-100 (opcional, 80 por defecto)

    Workflow:
    1. Valida el cuerpo de la petición
    2. Obtiene credencial de Spotify y elige un género para la emoción
    3. Crea la sesión emocional y consulta recomendaciones (con búsqueda
       como respaldo)
    4. Devuelve la sesión y las recomendaciones guardadas

    Example:
        POST /api/recommendations
        Body: {"emotion": "happy", "confidence": 90}

        Response:
        {
            "session": {"id": 1, "emotion": "happy", "confidence": 90, ...},
            "recommendations": [{"trackId": "...", "matchScore": 93, ...}]
        }

    Error cases:
        - 400: Falta la emoción, falla Spotify o no hay pistas
        - 500: Credenciales de Spotify inválidas o error inesperado
    """
    body = request.get_json(silent=True)
    try:
        emotion, confidence = parse_recommendation_request(body)
    except ValidationError as e:
        return jsonify({'message': e.message}), 400

    service = current_app.config['RECOMMENDATION_SERVICE']
    metrics = get_metrics()

    try:
        with metrics.measure('recommendation_fetch', metadata={'emotion': emotion}) as timing:
            result = service.get_recommendations(emotion, confidence)

    except ProviderAuthError as e:
        current_app.logger.error(f"Error de credenciales de Spotify: {e}")
        return jsonify({'message': e.message}), 500

    except ProviderQueryError as e:
        return jsonify({
            'message': e.message,
            'error': e.detail,
            'status': e.status
        }), 400

    except EmptyResultError as e:
        return jsonify({'message': e.message}), 400

    except Exception as e:
        current_app.logger.error(f"Error en /api/recommendations: {str(e)}", exc_info=True)
        error_message = str(e) if current_app.debug else 'Error interno del servidor'
        return jsonify({
            'message': 'Error al obtener recomendaciones',
            'error': error_message
        }), 500

    response = {
        'session': result['session'],
        'recommendations': result['recommendations']
    }

    if current_app.config.get('INCLUDE_METRICS', False):
        response['processingTimeMs'] = round(timing['duration'] * 1000, 2)

    return jsonify(response), 200

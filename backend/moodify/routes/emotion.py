"""
Blueprint para endpoints relacionados con sesiones y detección emocional.

Proporciona el historial de sesiones emocionales, el registro manual de una
emoción y la detección de emociones sobre una imagen enviada por el cliente.
"""

import threading

import cv2
import numpy as np
from flask import Blueprint, current_app, jsonify, request

from ..core.camera.webcam import normalize_bounding_box
from ..core.emotion.deepface_adapter import DeepFaceExpressionAdapter
from ..core.errors import (
    CapabilityError,
    ConnectivityError,
    InferenceTimeoutError,
    MoodifyError,
    ValidationError
)
from ..core.utils.metrics import get_metrics
from .validation import parse_emotion_session

emotion_bp = Blueprint('emotion', __name__, url_prefix='/api/emotions')

# Lock global para thread-safety en lazy initialization
_adapter_lock = threading.Lock()

# Número de sesiones devueltas por /recent
RECENT_LIMIT = 10


def _get_or_create_adapter():
    """
    Obtiene el adaptador de inferencia existente o lo crea (lazy initialization).

    Los modelos no se cargan aquí: el adaptador los carga en su primer uso.
    """
    adapter = current_app.config.get('EXPRESSION_ADAPTER')
    if adapter is not None:
        return adapter

    with _adapter_lock:
        # Double-check: otro thread pudo haberlo creado mientras esperábamos
        adapter = current_app.config.get('EXPRESSION_ADAPTER')
        if adapter is None:
            current_app.logger.info("[LAZY INIT] Creando adaptador de inferencia")
            adapter = DeepFaceExpressionAdapter(
                degraded_mode=current_app.config.get('DEGRADED_MODE', True)
            )
            current_app.config['EXPRESSION_ADAPTER'] = adapter
        return adapter


@emotion_bp.route('/recent', methods=['GET'])
def recent_emotions():
    """
    Devuelve las sesiones emocionales más recientes (máximo 10).

    Response:
        [{"id": 3, "emotion": "happy", "confidence": 90, "timestamp": "..."}, ...]
    """
    store = current_app.config['RECORD_STORE']
    try:
        sessions = store.get_recent_emotion_sessions(None, RECENT_LIMIT)
    except Exception as e:
        current_app.logger.error(f"Error en /api/emotions/recent: {e}", exc_info=True)
        return jsonify({'message': 'Error al obtener las emociones recientes'}), 500
    return jsonify(sessions), 200


@emotion_bp.route('', methods=['POST'])
def record_emotion():
    """
    Registra una detección emocional como nueva sesión.

    JSON Body:
        emotion (str): Emoción detectada
        confidence (int): Confianza 0-100

    Error cases:
        - 400: Payload inválido (sin efectos secundarios)
    """
    try:
        data = parse_emotion_session(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({'message': e.message}), 400

    session = current_app.config['RECORD_STORE'].create_emotion_session(data)
    return jsonify(session), 200


@emotion_bp.route('/<int:session_id>/recommendations', methods=['GET'])
def session_recommendations(session_id: int):
    """
    Devuelve las recomendaciones creadas para una sesión.

    Error cases:
        - 404: La sesión no existe
    """
    store = current_app.config['RECORD_STORE']
    if store.get_emotion_session(session_id) is None:
        return jsonify({'message': f'Sesión {session_id} no encontrada'}), 404
    return jsonify(store.get_recommendations_by_session(session_id)), 200


@emotion_bp.route('/detect', methods=['POST'])
def detect_emotion_from_frame():
    """
    Detecta la emoción facial en una imagen enviada por el cliente.

    Request:
        - Content-Type: multipart/form-data
        - Campo: "image" (archivo jpeg/png)

    Response:
        {
            "faceDetected": true,
            "sample": {"emotion": "happy", "confidence": 87, "expressions": {...},
                       "boundingBox": {...}, "degraded": false},
            "normalizedBox": {"left": 25.0, "top": 20.0, "width": 40.0, "height": 50.0}
        }

    Error cases:
        - 400: Falta el campo "image" o formato inválido
        - 503: Entorno sin soporte de inferencia o modelos no disponibles
        - 504: Timeout de inferencia (con el modo degradado desactivado)
        - 500: Error interno del servidor
    """
    if 'image' not in request.files:
        return jsonify({'message': 'Debes enviar una imagen en el campo "image"'}), 400

    file_bytes = request.files['image'].read()
    if not file_bytes:
        return jsonify({'message': 'El archivo enviado no contiene datos'}), 400

    # Decodificar imagen con OpenCV (BGR)
    frame = cv2.imdecode(np.frombuffer(file_bytes, np.uint8), cv2.IMREAD_COLOR)
    if frame is None:
        return jsonify({
            'message': 'No se pudo decodificar la imagen. Usa formato JPEG o PNG'
        }), 400

    metrics = get_metrics()
    try:
        adapter = _get_or_create_adapter()
        stage_metadata = {'endpoint': '/api/emotions/detect'}
        with metrics.measure('emotion_from_frame', metadata=stage_metadata) as timing:
            sample = adapter.infer(frame)

    except (CapabilityError, ConnectivityError) as e:
        return jsonify({'message': e.message}), 503

    except InferenceTimeoutError as e:
        return jsonify({'message': e.message}), 504

    except MoodifyError as e:
        current_app.logger.error(f"Error en /api/emotions/detect: {e}")
        return jsonify({'message': e.message, 'error': e.detail}), 500

    except Exception as e:
        current_app.logger.error(f"Error en /api/emotions/detect: {str(e)}", exc_info=True)
        error_message = str(e) if current_app.debug else 'Error interno del servidor'
        return jsonify({
            'message': 'Error al procesar la imagen',
            'error': error_message
        }), 500

    if sample is None:
        return jsonify({'faceDetected': False, 'sample': None}), 200

    height, width = frame.shape[:2]
    response = {
        'faceDetected': True,
        'sample': sample,
        'normalizedBox': normalize_bounding_box(sample.get('boundingBox'), width, height)
    }

    if current_app.config.get('INCLUDE_METRICS', False):
        response['processingTimeMs'] = round(timing['duration'] * 1000, 2)

    return jsonify(response), 200

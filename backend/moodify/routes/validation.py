"""
Validación de payloads de la API.

Las funciones lanzan ValidationError antes de cualquier efecto secundario.
"""

from typing import Optional, Tuple

from ..core.errors import ValidationError


def _parse_emotion(body) -> str:
    if not isinstance(body, dict):
        raise ValidationError("El cuerpo de la petición debe ser un objeto JSON")

    emotion = body.get('emotion')
    if not isinstance(emotion, str) or not emotion.strip():
        raise ValidationError("El campo 'emotion' es obligatorio")

    return emotion.strip()


def _parse_confidence(value) -> int:
    # bool es subclase de int en Python
    if isinstance(value, bool):
        raise ValidationError("'confidence' debe ser un entero")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError("'confidence' debe ser un entero")
    if not 0 <= value <= 100:
        raise ValidationError("'confidence' debe estar entre 0 y 100")
    return value


def parse_recommendation_request(body) -> Tuple[str, Optional[int]]:
    """
    Valida el cuerpo de POST /api/recommendations.

    Returns:
        (emotion, confidence) con confidence None si no se envió
    """
    emotion = _parse_emotion(body)
    confidence = body.get('confidence')
    if confidence is not None:
        confidence = _parse_confidence(confidence)
    return emotion, confidence


def parse_emotion_session(body) -> dict:
    """
    Valida el cuerpo de POST /api/emotions (forma de inserción de sesión).

    Returns:
        Dict con 'emotion' y 'confidence'
    """
    emotion = _parse_emotion(body)
    if 'confidence' not in body or body['confidence'] is None:
        raise ValidationError("El campo 'confidence' es obligatorio")
    return {
        'emotion': emotion,
        'confidence': _parse_confidence(body['confidence'])
    }

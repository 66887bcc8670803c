"""
Módulo de normalización de emociones.

Este módulo define el conjunto de etiquetas emocionales que usa todo el
sistema (detección, sesiones y mapeo de géneros) y proporciona funciones
para normalizar las etiquetas que devuelve DeepFace a ese conjunto.

DeepFace usa sustantivos ("surprise", "fear", "disgust") mientras que el
cliente y el mapeo de géneros trabajan con adjetivos ("surprised",
"fearful", "disgusted").
"""

from typing import Dict, List, Optional, Tuple

# Conjunto fijo de emociones estándar del sistema (orden de desempate)
STANDARD_EMOTIONS: List[str] = [
    "happy",
    "sad",
    "angry",
    "surprised",
    "neutral",
    "fearful",
    "disgusted"
]

# Mapeo de etiquetas de DeepFace (y sinónimos) a emociones estándar
DEEPFACE_TO_STANDARD: Dict[str, str] = {
    "happy": "happy",
    "sad": "sad",
    "angry": "angry",
    "surprise": "surprised",
    "neutral": "neutral",
    "fear": "fearful",
    "disgust": "disgusted",

    # Variaciones o sinónimos posibles
    "happiness": "happy",
    "sadness": "sad",
    "anger": "angry",
    "scared": "fearful",
    "surprised": "surprised",
    "fearful": "fearful",
    "disgusted": "disgusted",
}

# Umbral mínimo (porcentaje redondeado) para aceptar una detección
MIN_CONFIDENCE = 30


def normalize_emotion(emotion: str) -> Optional[str]:
    """
    Normaliza una etiqueta de emoción al conjunto estándar.

    A diferencia de un fallback silencioso a "neutral", devuelve None si la
    etiqueta no se reconoce: una puntuación desconocida no debe convertirse
    en la emoción dominante.

    Args:
        emotion (str): Etiqueta de emoción (por ejemplo, salida de DeepFace)

    Returns:
        Optional[str]: Emoción normalizada o None si no se reconoce

    Examples:
        >>> normalize_emotion("surprise")
        'surprised'

        >>> normalize_emotion("HAPPY")
        'happy'

        >>> normalize_emotion("confused") is None
        True
    """
    if not emotion:
        return None

    return DEEPFACE_TO_STANDARD.get(emotion.lower().strip())


def round_expression_scores(raw_scores: Dict[str, float]) -> Dict[str, int]:
    """
    Normaliza y redondea las puntuaciones de expresión a porcentajes enteros.

    Las etiquetas no reconocidas se descartan. Se conserva el orden de
    aparición, que es el que decide los empates en select_top_expression().

    Args:
        raw_scores (Dict[str, float]): Puntuaciones en porcentaje [0, 100]

    Returns:
        Dict[str, int]: Puntuaciones por emoción estándar, redondeadas
    """
    scores: Dict[str, int] = {}
    for label, value in raw_scores.items():
        normalized = normalize_emotion(label)
        if normalized is None or normalized in scores:
            continue
        scores[normalized] = int(round(max(0.0, min(100.0, float(value)))))
    return scores


def select_top_expression(scores: Dict[str, int]) -> Optional[Tuple[str, int]]:
    """
    Selecciona la etiqueta con la puntuación máxima.

    Los empates se resuelven a favor de la primera etiqueta encontrada
    (comparación estricta).

    Args:
        scores (Dict[str, int]): Puntuaciones por emoción

    Returns:
        Optional[Tuple[str, int]]: (emoción, confianza) o None si está vacío

    Examples:
        >>> select_top_expression({'sad': 40, 'happy': 40, 'angry': 10})
        ('sad', 40)
    """
    top = None
    for label, value in scores.items():
        if top is None or value > top[1]:
            top = (label, value)
    return top

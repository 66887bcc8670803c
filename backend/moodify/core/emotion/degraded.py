"""
Generador de muestras en modo degradado.

Cuando la inferencia real falla por un motivo genérico (no de capacidad),
el adaptador sustituye el error por una muestra sintética para que el
usuario no quede bloqueado. Estas muestras se marcan siempre con
``degraded=True`` para que nunca sean indistinguibles de una detección real.
"""

import random
from typing import Dict, Optional, Tuple

from .schema import STANDARD_EMOTIONS

# Emociones que puede devolver el modo degradado
DEGRADED_EMOTIONS = ['happy', 'neutral', 'surprised', 'sad']

# Techo aleatorio de las puntuaciones secundarias por emoción
SECONDARY_SCORE_CEILING: Dict[str, int] = {
    'happy': 20,
    'sad': 10,
    'angry': 5,
    'surprised': 15,
    'fearful': 8,
    'disgusted': 5,
}


def make_degraded_sample(
    frame_size: Optional[Tuple[int, int]] = None,
    rng: Optional[random.Random] = None
) -> Dict[str, any]:
    """
    Crea una EmotionSample sintética con una distribución plausible.

    Args:
        frame_size: (ancho, alto) del frame de origen, para la caja facial
        rng: Generador aleatorio (inyectable para tests)

    Returns:
        Dict[str, any]: EmotionSample con 'degraded': True
    """
    rng = rng or random
    emotion = rng.choice(DEGRADED_EMOTIONS)
    confidence = rng.randint(70, 99)

    expressions: Dict[str, int] = {}
    for label in STANDARD_EMOTIONS:
        if label == emotion:
            expressions[label] = confidence
        elif label == 'neutral':
            expressions[label] = max(0, 100 - confidence - 10)
        else:
            expressions[label] = rng.randint(0, SECONDARY_SCORE_CEILING[label])

    sample = {
        'emotion': emotion,
        'confidence': confidence,
        'expressions': expressions,
        'degraded': True
    }

    if frame_size:
        width, height = frame_size
        sample['boundingBox'] = {
            'x': width * 0.3,
            'y': height * 0.2,
            'width': width * 0.4,
            'height': height * 0.5
        }

    return sample

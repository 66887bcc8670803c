"""
Adaptador de inferencia de expresiones faciales usando DeepFace.

Este módulo envuelve DeepFace como una caja negra: dado un frame devuelve
una EmotionSample (emoción dominante, confianza y puntuaciones por
expresión) o None si no se encontró un rostro con confianza suficiente.

Ciclo de vida del modelo:
    1. Comprobación de capacidad (una sola vez por proceso). Si el entorno
       no soporta la inferencia se lanza CapabilityError y nunca se cargan
       los modelos.
    2. Carga perezosa de pesos (una sola vez por proceso, thread-safe).
       Un fallo de descarga/carga se traduce en ConnectivityError.
    3. Inferencia con presupuesto de 5 segundos.

Modo degradado: si la inferencia falla por cualquier otro motivo una vez
cargados los modelos, se devuelve una muestra sintética marcada con
``degraded=True`` en lugar de propagar el error.
"""

import importlib.util
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from ..errors import CapabilityError, ConnectivityError, InferenceTimeoutError, MoodifyError
from .degraded import make_degraded_sample
from .schema import MIN_CONFIDENCE, round_expression_scores, select_top_expression

logger = logging.getLogger(__name__)

# Presupuesto de tiempo por inferencia (segundos)
INFERENCE_TIMEOUT = 5.0

# Umbral de confianza del detector facial (equivalente al scoreThreshold 0.5)
MIN_FACE_CONFIDENCE = 0.5

# Estado de carga de modelos compartido por todo el proceso
_models_lock = threading.Lock()
_models_loaded = False
_capability_error: Optional[CapabilityError] = None
_capability_checked = False


def _default_analyze(**kwargs):
    # Import diferido: DeepFace arrastra TensorFlow y tarda en importarse
    from deepface import DeepFace
    return DeepFace.analyze(**kwargs)


def check_inference_support(require_gpu: bool = False) -> None:
    """
    Verifica (una sola vez) que el entorno soporta la inferencia facial.

    Comprueba que el backend de deep learning de DeepFace (TensorFlow) está
    instalado y, si require_gpu es True, que expone al menos una GPU.

    Raises:
        CapabilityError: Si falta el backend o la aceleración requerida
    """
    global _capability_checked, _capability_error

    if _capability_checked:
        if _capability_error is not None:
            raise _capability_error
        return

    error = None
    if importlib.util.find_spec('tensorflow') is None:
        error = CapabilityError(
            "La detección facial requiere TensorFlow, que no está disponible "
            "en este entorno."
        )
    elif require_gpu:
        import tensorflow as tf
        if not tf.config.list_physical_devices('GPU'):
            error = CapabilityError(
                "La detección facial está configurada para requerir GPU y "
                "no se encontró ninguna."
            )

    _capability_checked = True
    _capability_error = error
    if error is not None:
        logger.error(f"Comprobación de capacidad fallida: {error.message}")
        raise error
    logger.info("Backend de inferencia disponible")


def models_loaded() -> bool:
    """Indica si los pesos del modelo ya están cargados en este proceso."""
    return _models_loaded


def reset_model_state() -> None:
    """Olvida el estado de capacidad y carga (solo para tests)."""
    global _models_loaded, _capability_checked, _capability_error
    with _models_lock:
        _models_loaded = False
        _capability_checked = False
        _capability_error = None


class DeepFaceExpressionAdapter:
    """
    Adaptador de inferencia de expresiones sobre DeepFace.

    Attributes:
        detector_backend (str): Backend de detección facial de DeepFace
        timeout (float): Presupuesto de tiempo por inferencia en segundos
        degraded_mode (bool): Si es True, sustituye fallos genéricos por
                              una muestra sintética
        require_gpu (bool): Si es True, la comprobación de capacidad exige GPU

    Example:
        >>> adapter = DeepFaceExpressionAdapter()
        >>> sample = adapter.infer(frame)
        >>> sample['emotion'], sample['confidence']
        ('happy', 87)
    """

    def __init__(
        self,
        analyze_fn: Optional[Callable] = None,
        detector_backend: str = 'opencv',
        timeout: float = INFERENCE_TIMEOUT,
        degraded_mode: bool = True,
        require_gpu: bool = False,
        min_face_confidence: float = MIN_FACE_CONFIDENCE
    ):
        self._analyze = analyze_fn or _default_analyze
        self.detector_backend = detector_backend
        self.timeout = timeout
        self.degraded_mode = degraded_mode
        self.require_gpu = require_gpu
        self.min_face_confidence = min_face_confidence
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def models_loaded(self) -> bool:
        return models_loaded()

    def load_models(self) -> None:
        """
        Carga los pesos del modelo (idempotente, memoizado por proceso).

        La comprobación de capacidad se ejecuta antes y bloquea la carga.

        Raises:
            CapabilityError: Si el entorno no soporta la inferencia
            ConnectivityError: Si los pesos no se pudieron descargar/cargar
        """
        global _models_loaded

        check_inference_support(self.require_gpu)

        if _models_loaded:
            return

        with _models_lock:
            if _models_loaded:
                return

            logger.info("Cargando modelos de DeepFace (puede tardar la primera vez)...")
            try:
                # Predicción sobre una imagen negra para forzar la carga de pesos
                dummy = np.zeros((100, 100, 3), dtype=np.uint8)
                self._analyze(
                    img_path=dummy,
                    actions=['emotion'],
                    enforce_detection=False,
                    detector_backend=self.detector_backend,
                    silent=True
                )
            except Exception as e:
                logger.error(f"Error al cargar los modelos de DeepFace: {e}")
                raise ConnectivityError(detail=str(e)) from e

            _models_loaded = True
            logger.info("Modelos de DeepFace cargados")

    def infer(self, frame: np.ndarray) -> Optional[Dict[str, any]]:
        """
        Detecta la expresión dominante en un frame.

        Args:
            frame (np.ndarray): Frame en formato BGR (OpenCV)

        Returns:
            Optional[Dict[str, any]]: EmotionSample con las claves 'emotion',
            'confidence', 'expressions', 'boundingBox' y 'degraded', o None
            si no hay rostro o la confianza es menor que 30.

        Raises:
            CapabilityError: Entorno no soportado (nunca se enmascara)
            ConnectivityError: Pesos no disponibles (nunca se enmascara)
            InferenceTimeoutError: Timeout con modo degradado desactivado
        """
        self.load_models()

        try:
            result = self._run_with_timeout(frame)
            return self._build_sample(result)

        except Exception as e:
            if not self.degraded_mode:
                if isinstance(e, MoodifyError):
                    raise
                raise MoodifyError(
                    "Error durante la detección de emociones", detail=str(e)
                ) from e

            logger.warning(f"Fallo en la inferencia, usando modo degradado: {e}")
            return make_degraded_sample(_frame_size(frame))

    def close(self) -> None:
        """Libera el hilo de inferencia."""
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def _run_with_timeout(self, frame: np.ndarray):
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix='deepface-infer'
            )

        future = self._executor.submit(
            self._analyze,
            img_path=frame,
            actions=['emotion'],
            enforce_detection=False,
            detector_backend=self.detector_backend,
            silent=True
        )
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError as e:
            # El hilo bloqueado no se puede interrumpir: la siguiente
            # inferencia arranca en un worker nuevo
            future.cancel()
            self._executor.shutdown(wait=False)
            self._executor = None
            raise InferenceTimeoutError(
                f"La detección facial superó {self.timeout:.0f} segundos"
            ) from e

    def _build_sample(self, result) -> Optional[Dict[str, any]]:
        # DeepFace devuelve una lista con un elemento por rostro
        if isinstance(result, list):
            if not result:
                return None
            result = result[0]

        face_confidence = result.get('face_confidence')
        if face_confidence is not None and face_confidence < self.min_face_confidence:
            return None

        expressions = round_expression_scores(result.get('emotion', {}))
        top = select_top_expression(expressions)
        if top is None:
            return None

        emotion, confidence = top
        if confidence < MIN_CONFIDENCE:
            return None

        sample = {
            'emotion': emotion,
            'confidence': confidence,
            'expressions': expressions,
            'degraded': False
        }

        region = result.get('region')
        if region:
            sample['boundingBox'] = {
                'x': region.get('x', 0),
                'y': region.get('y', 0),
                'width': region.get('w', 0),
                'height': region.get('h', 0)
            }

        return sample


def _frame_size(frame) -> Optional[Tuple[int, int]]:
    shape = getattr(frame, 'shape', None)
    if not shape or len(shape) < 2:
        return None
    return int(shape[1]), int(shape[0])

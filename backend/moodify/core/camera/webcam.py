"""
Módulo de captura de webcam usando OpenCV.

Este módulo proporciona la fuente de frames del bucle de detección. Expone
un "ready state" con la misma escala que un elemento de vídeo del navegador
(HAVE_NOTHING ... HAVE_ENOUGH_DATA) y las dimensiones en píxeles del frame,
necesarias para normalizar las cajas faciales a proporciones de pantalla.
"""

import logging
from typing import Dict, Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Estados de disponibilidad de datos del frame
HAVE_NOTHING = 0
HAVE_METADATA = 1
HAVE_CURRENT_DATA = 2
HAVE_FUTURE_DATA = 3
HAVE_ENOUGH_DATA = 4


class WebcamCapture:
    """
    Fuente de frames desde webcam.

    Attributes:
        camera_index (int): Índice de la cámara a utilizar (default: 0)
        cap (cv2.VideoCapture): Objeto de captura de OpenCV
        is_opened (bool): Estado de la cámara
        ready_state (int): Disponibilidad de datos del frame actual
    """

    def __init__(self, camera_index: int = 0, width: int = 1280, height: int = 720,
                 warmup_reads: int = 5):
        self.camera_index = camera_index
        self.warmup_reads = warmup_reads
        self.requested_size = (width, height)
        self.cap: Optional[cv2.VideoCapture] = None
        self.is_opened = False
        self.ready_state = HAVE_NOTHING
        self._last_frame: Optional[np.ndarray] = None

    def start(self) -> bool:
        """
        Abre la conexión con la webcam.

        Returns:
            bool: True si la cámara se abrió correctamente

        Raises:
            RuntimeError: Si no se puede abrir la cámara
        """
        self.cap = cv2.VideoCapture(self.camera_index)

        if not self.cap.isOpened():
            self.is_opened = False
            raise RuntimeError(
                f"No se pudo abrir la cámara con índice {self.camera_index}. "
                "Verifica que la cámara esté conectada y no esté siendo utilizada por otra aplicación."
            )

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.requested_size[0])
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.requested_size[1])

        self.is_opened = True
        self.ready_state = HAVE_METADATA
        logger.info(f"Cámara {self.camera_index} abierta correctamente")

        # Algunas cámaras devuelven frames vacíos al arrancar
        for _ in range(self.warmup_reads):
            success, _frame = self.read()
            if success:
                break

        return True

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Lee un frame de la webcam y actualiza el ready state.

        Returns:
            Tuple[bool, Optional[np.ndarray]]: (éxito, frame BGR o None)

        Raises:
            RuntimeError: Si se intenta leer sin haber abierto la cámara
        """
        if not self.is_opened or self.cap is None:
            raise RuntimeError(
                "La cámara no está abierta. Llama a start() antes de leer frames."
            )

        success, frame = self.cap.read()

        if not success:
            logger.warning("No se pudo leer el frame de la cámara")
            # Un frame anterior sigue siendo un dato actual válido
            self.ready_state = HAVE_CURRENT_DATA if self._last_frame is not None else HAVE_METADATA
            return False, None

        self._last_frame = frame
        self.ready_state = HAVE_ENOUGH_DATA
        return True, frame

    def current_frame(self) -> Optional[np.ndarray]:
        """
        Devuelve el frame actual, leyendo uno nuevo de la cámara.

        Returns None mientras la fuente no tenga datos.
        """
        if not self.is_opened:
            return None
        success, frame = self.read()
        return frame if success else None

    @property
    def frame_size(self) -> Tuple[int, int]:
        """Dimensiones (ancho, alto) en píxeles del frame de origen."""
        if self._last_frame is not None:
            return int(self._last_frame.shape[1]), int(self._last_frame.shape[0])
        if self.cap is not None and self.is_opened:
            return (
                int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
            )
        return (0, 0)

    def release(self) -> None:
        """Libera los recursos de la cámara y cierra la conexión."""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info("Recursos de cámara liberados")
        self.is_opened = False
        self.ready_state = HAVE_NOTHING
        self._last_frame = None

    def get_properties(self) -> dict:
        """Obtiene las propiedades actuales de la cámara (ancho, alto, fps)."""
        if not self.is_opened or self.cap is None:
            return {}

        return {
            'width': int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            'height': int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            'fps': int(self.cap.get(cv2.CAP_PROP_FPS))
        }

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


def normalize_bounding_box(box: Dict[str, float], width: int, height: int) -> Optional[Dict[str, float]]:
    """
    Convierte una caja facial en píxeles a porcentajes del frame mostrado.

    Args:
        box: Caja con claves 'x', 'y', 'width', 'height' en píxeles de origen
        width: Ancho en píxeles del frame de origen
        height: Alto en píxeles del frame de origen

    Returns:
        Caja en porcentajes [0, 100] o None si las dimensiones no son válidas

    Example:
        >>> normalize_bounding_box({'x': 320, 'y': 180, 'width': 640, 'height': 360}, 1280, 720)
        {'left': 25.0, 'top': 25.0, 'width': 50.0, 'height': 50.0}
    """
    if not box or width <= 0 or height <= 0:
        return None

    return {
        'left': box['x'] / width * 100,
        'top': box['y'] / height * 100,
        'width': box['width'] / width * 100,
        'height': box['height'] / height * 100
    }

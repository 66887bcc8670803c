"""
Bucle de detección emocional por sondeo.

Este módulo implementa el controlador que sondea el adaptador de inferencia
a intervalos fijos hasta obtener una detección con confianza suficiente.

Máquina de estados:

    idle -> loading -> polling -> resolved
                 \\          \\
                  -> failed   -> failed

- loading: carga perezosa de modelos. Un fallo (capacidad o conectividad)
  pasa a failed con el error tal cual, sin reintentos.
- polling: cada `interval` segundos se invoca el adaptador sobre el frame
  actual. Los ticks en los que la fuente no tiene datos se descartan.
- resolved: primera detección válida. Se cancela el sondeo y se emite una
  única EmotionSample.
- failed: error de inferencia. Se cancela el sondeo sin reintentar.

Cada ciclo de sondeo posee su propio token de cancelación
(threading.Event). Solo puede haber un ciclo activo a la vez.
"""

import logging
import threading
from typing import Callable, Dict, Optional

from ..camera.webcam import HAVE_CURRENT_DATA

logger = logging.getLogger(__name__)

# Estados del controlador
IDLE = 'idle'
LOADING = 'loading'
POLLING = 'polling'
RESOLVED = 'resolved'
FAILED = 'failed'

# Intervalo de sondeo por defecto (segundos)
DEFAULT_INTERVAL = 2.0


class PollingCycle:
    """Un ciclo de sondeo con su token de cancelación."""

    def __init__(self):
        self.token = threading.Event()
        self.thread: Optional[threading.Thread] = None

    @property
    def cancelled(self) -> bool:
        return self.token.is_set()

    def cancel(self) -> None:
        self.token.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self.thread is not None and self.thread is not threading.current_thread():
            self.thread.join(timeout)


class DetectionLoop:
    """
    Controlador del bucle de detección emocional.

    Attributes:
        adapter: Adaptador de inferencia (DeepFaceExpressionAdapter)
        frame_source: Fuente de frames con `ready_state` y `current_frame()`
        interval (float): Segundos entre ticks de sondeo
        state (str): Estado actual de la máquina
        current_sample (dict): Última EmotionSample resuelta (o None)
        error (Exception): Último error que llevó a failed (o None)

    Example:
        >>> loop = DetectionLoop(adapter, camera, on_result=print)
        >>> loop.start()
        >>> sample = loop.wait(timeout=30)
        >>> loop.close()
    """

    def __init__(
        self,
        adapter,
        frame_source,
        interval: float = DEFAULT_INTERVAL,
        on_result: Optional[Callable[[Dict], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None
    ):
        self.adapter = adapter
        self.frame_source = frame_source
        self.interval = interval
        self.on_result = on_result
        self.on_error = on_error

        self.state = IDLE
        self.current_sample: Optional[Dict] = None
        self.error: Optional[Exception] = None

        self._lock = threading.RLock()
        self._infer_lock = threading.Lock()
        self._settled = threading.Event()
        self._cycle: Optional[PollingCycle] = None

    @property
    def active_cycle(self) -> Optional[PollingCycle]:
        """Ciclo de sondeo activo (None si no hay ninguno)."""
        return self._cycle

    @property
    def is_detecting(self) -> bool:
        return self.state in (LOADING, POLLING)

    def start(self) -> bool:
        """
        Inicia un ciclo de detección.

        Returns:
            bool: False si ya había un ciclo en curso (no-op)
        """
        with self._lock:
            if self.state in (LOADING, POLLING):
                return False

            self.error = None
            self._settled.clear()

            cycle = PollingCycle()
            self._cycle = cycle
            self.state = POLLING if self.adapter.models_loaded else LOADING

            cycle.thread = threading.Thread(
                target=self._run,
                args=(cycle, self.state == LOADING),
                name='detection-loop',
                daemon=True
            )
            cycle.thread.start()
            logger.info(f"Detección iniciada (estado: {self.state})")
            return True

    def stop(self) -> None:
        """Cancela el ciclo activo. Idempotente desde cualquier estado."""
        with self._lock:
            cycle = self._cycle
            self._cycle = None
            if cycle is not None:
                cycle.cancel()
            if self.state in (LOADING, POLLING):
                self.state = IDLE
            self._settled.set()

    def redetect(self) -> bool:
        """Descarta la muestra actual y reinicia la detección."""
        with self._lock:
            self.current_sample = None
            self.stop()
            return self.start()

    def close(self, timeout: Optional[float] = None) -> None:
        """Desmonta el controlador: cancela y espera al hilo de sondeo."""
        cycle = self._cycle
        self.stop()
        if cycle is not None:
            cycle.join(timeout)

    def wait(self, timeout: Optional[float] = None) -> Optional[Dict]:
        """
        Espera a que el ciclo actual se resuelva, falle o se detenga.

        Returns:
            La EmotionSample resuelta o None
        """
        self._settled.wait(timeout)
        return self.current_sample

    def _run(self, cycle: PollingCycle, needs_loading: bool) -> None:
        if needs_loading:
            try:
                self.adapter.load_models()
            except Exception as e:
                self._fail(cycle, e)
                return

            with self._lock:
                if cycle.cancelled or self._cycle is not cycle:
                    return
                self.state = POLLING
                logger.info("Modelos cargados, sondeando")

        # Igual que un temporizador periódico: el primer tick llega tras un intervalo
        while not cycle.token.wait(self.interval):
            try:
                sample = self._tick(cycle)
            except Exception as e:
                self._fail(cycle, e)
                return

            if sample is not None:
                self._resolve(cycle, sample)
                return

    def _tick(self, cycle: PollingCycle) -> Optional[Dict]:
        if getattr(self.frame_source, 'ready_state', 0) < HAVE_CURRENT_DATA:
            return None

        with self._infer_lock:
            if cycle.cancelled:
                return None
            frame = self.frame_source.current_frame()
            if frame is None:
                return None
            return self.adapter.infer(frame)

    def _resolve(self, cycle: PollingCycle, sample: Dict) -> None:
        with self._lock:
            if cycle.cancelled or self._cycle is not cycle:
                return
            cycle.cancel()
            self._cycle = None
            self.current_sample = sample
            self.state = RESOLVED
            self._settled.set()

        logger.info(
            f"Emoción resuelta: {sample['emotion']} ({sample['confidence']}%)"
            + (" [modo degradado]" if sample.get('degraded') else "")
        )
        if self.on_result:
            self.on_result(sample)

    def _fail(self, cycle: PollingCycle, error: Exception) -> None:
        with self._lock:
            if cycle.cancelled or self._cycle is not cycle:
                return
            cycle.cancel()
            self._cycle = None
            self.error = error
            self.state = FAILED
            self._settled.set()

        logger.error(f"Error en la detección de emociones: {error}")
        if self.on_error:
            self.on_error(error)

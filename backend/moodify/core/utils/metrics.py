"""
Módulo de instrumentación y medición de rendimiento.

Mide latencias de las etapas del sistema (detección sobre un frame,
obtención de recomendaciones) para poder inspeccionarlas desde /health o
desde los scripts de demostración.
"""

import statistics
import time
from collections import defaultdict, deque
from contextlib import contextmanager
from datetime import datetime
from typing import Deque, Dict, Optional

# Mediciones conservadas por etapa (las más antiguas se descartan)
MAX_MEASUREMENTS_PER_STAGE = 1000


class PerformanceMetrics:
    """
    Gestor de métricas de rendimiento del sistema.

    Guarda la duración de las últimas ejecuciones de cada etapa y calcula
    estadísticas básicas sobre ellas.
    """

    def __init__(self, max_measurements: int = MAX_MEASUREMENTS_PER_STAGE):
        self.measurements: Dict[str, Deque[float]] = defaultdict(
            lambda: deque(maxlen=max_measurements)
        )

    @contextmanager
    def measure(self, stage_name: str, metadata: Optional[Dict] = None):
        """
        Context manager para medir el tiempo de ejecución de una etapa.

        El diccionario devuelto recibe la clave 'duration' (segundos) al
        salir del bloque.

        Example:
            with metrics.measure('recommendation_fetch') as timing:
                result = service.get_recommendations('happy', 90)
            print(f"Tardó {timing['duration']} segundos")
        """
        start_time = time.perf_counter()
        timing_info = {'stage': stage_name}

        try:
            yield timing_info
        finally:
            duration = time.perf_counter() - start_time

            timing_info['duration'] = duration
            timing_info['timestamp'] = datetime.now().isoformat()
            if metadata:
                timing_info.update(metadata)

            self.measurements[stage_name].append(duration)

    def get_statistics(self, stage_name: Optional[str] = None) -> Dict:
        """
        Calcula estadísticas sobre las mediciones realizadas.

        Args:
            stage_name: Etapa específica (None para todas)

        Returns:
            Diccionario con estadísticas por etapa (en segundos)
        """
        if stage_name:
            stages = {stage_name: self.measurements.get(stage_name, [])}
        else:
            stages = self.measurements

        stats = {}
        for name, times in stages.items():
            if not times:
                continue

            stats[name] = {
                'count': len(times),
                'mean': statistics.mean(times),
                'median': statistics.median(times),
                'stdev': statistics.stdev(times) if len(times) > 1 else 0.0,
                'min': min(times),
                'max': max(times)
            }

        return stats

    def print_summary(self):
        """Imprime un resumen de las estadísticas por consola."""
        stats = self.get_statistics()

        if not stats:
            print("No hay mediciones disponibles")
            return

        print("\n" + "=" * 70)
        print("RESUMEN DE MÉTRICAS DE RENDIMIENTO")
        print("=" * 70)

        for stage_name, stage_stats in stats.items():
            print(f"\n[{stage_name.upper()}]")
            print(f"  Mediciones: {stage_stats['count']}")
            print(f"  Media:      {stage_stats['mean']*1000:.2f} ms")
            print(f"  Mediana:    {stage_stats['median']*1000:.2f} ms")
            print(f"  Mínimo:     {stage_stats['min']*1000:.2f} ms")
            print(f"  Máximo:     {stage_stats['max']*1000:.2f} ms")

        print("\n" + "=" * 70 + "\n")


# Instancia global para uso en la aplicación
_global_metrics = None


def get_metrics() -> PerformanceMetrics:
    """Obtiene la instancia global de métricas."""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = PerformanceMetrics()
    return _global_metrics


def reset_metrics():
    """Reinicia la instancia global de métricas."""
    global _global_metrics
    _global_metrics = None

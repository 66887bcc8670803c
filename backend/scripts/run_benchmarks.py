#!/usr/bin/env python3
"""
Script de benchmarking para evaluación de rendimiento del sistema.

Ejecuta múltiples mediciones de los endpoints /api/recommendations y
/api/emotions/detect para obtener estadísticas representativas de latencia.

Uso:
    python run_benchmarks.py [--iterations N] [--url URL] [--image FICHERO]

Ejemplo:
    python run_benchmarks.py --iterations 30 --url http://localhost:5000 --image cara.jpg
"""

import argparse
import json
import random
import time
from datetime import datetime
from pathlib import Path
from statistics import mean, median, stdev
from typing import Optional

import requests

# Emociones usadas para las peticiones de recomendación
BENCHMARK_EMOTIONS = ['happy', 'sad', 'angry', 'surprised', 'neutral', 'fearful', 'disgusted']


class BenchmarkRunner:
    """Ejecutor de benchmarks para la API de Moodify."""

    def __init__(self, base_url: str = 'http://localhost:5000', iterations: int = 25,
                 image_path: Optional[str] = None):
        """
        Inicializa el runner de benchmarks.

        Args:
            base_url: URL base del servidor Flask
            iterations: Número de iteraciones por endpoint
            image_path: Imagen para /api/emotions/detect (None para omitirlo)
        """
        self.base_url = base_url.rstrip('/')
        self.iterations = iterations
        self.image_path = image_path
        self.results = {
            'recommendations': [],
            'detect': []
        }

    def check_server(self) -> bool:
        """
        Verifica que el servidor esté disponible.

        Returns:
            True si el servidor responde, False en caso contrario
        """
        try:
            response = requests.get(f"{self.base_url}/health", timeout=5)
            return response.status_code == 200
        except requests.RequestException:
            return False

    def benchmark_recommendations(self, emotion: str) -> dict:
        """
        Ejecuta una petición a /api/recommendations.

        Returns:
            Diccionario con tiempo de respuesta y datos de la respuesta
        """
        start_time = time.perf_counter()

        try:
            response = requests.post(
                f"{self.base_url}/api/recommendations",
                json={'emotion': emotion, 'confidence': 90},
                timeout=30
            )
            duration = time.perf_counter() - start_time

            if response.status_code == 200:
                data = response.json()
                return {
                    'success': True,
                    'duration': duration,
                    'emotion': data['session']['emotion'],
                    'tracks': len(data.get('recommendations', []))
                }
            return {
                'success': False,
                'duration': duration,
                'error': f"HTTP {response.status_code}"
            }

        except requests.RequestException as e:
            return {
                'success': False,
                'duration': time.perf_counter() - start_time,
                'error': str(e)
            }

    def benchmark_detect(self, image_bytes: bytes) -> dict:
        """
        Ejecuta una petición a /api/emotions/detect con la imagen configurada.

        Returns:
            Diccionario con tiempo de respuesta y datos de la respuesta
        """
        start_time = time.perf_counter()

        try:
            response = requests.post(
                f"{self.base_url}/api/emotions/detect",
                files={'image': ('frame.jpg', image_bytes, 'image/jpeg')},
                timeout=30
            )
            duration = time.perf_counter() - start_time

            if response.status_code == 200:
                data = response.json()
                sample = data.get('sample') or {}
                return {
                    'success': True,
                    'duration': duration,
                    'emotion': sample.get('emotion', 'sin rostro'),
                    'degraded': sample.get('degraded', False)
                }
            return {
                'success': False,
                'duration': duration,
                'error': f"HTTP {response.status_code}"
            }

        except requests.RequestException as e:
            return {
                'success': False,
                'duration': time.perf_counter() - start_time,
                'error': str(e)
            }

    def run_benchmarks(self):
        """
        Ejecuta todos los benchmarks según el número de iteraciones configurado.
        """
        print(f"\n{'='*70}")
        print(f"BENCHMARK DE RENDIMIENTO - {self.iterations} iteraciones por endpoint")
        print(f"{'='*70}\n")

        print("[INFO] Verificando servidor...")
        if not self.check_server():
            print("[ERROR] El servidor no está disponible en", self.base_url)
            print("        Asegúrate de que Flask esté ejecutándose.")
            return
        print("[OK] Servidor disponible\n")

        print(f"[BENCHMARK] Ejecutando {self.iterations} mediciones de /api/recommendations...")
        for i in range(self.iterations):
            result = self.benchmark_recommendations(random.choice(BENCHMARK_EMOTIONS))
            if result['success']:
                self.results['recommendations'].append(result['duration'])
                print(f"  [{i+1}/{self.iterations}] {result['duration']*1000:.2f} ms - "
                      f"{result['emotion']} ({result['tracks']} pistas)")
            else:
                print(f"  [{i+1}/{self.iterations}] ERROR: {result.get('error')}")

            # Pequeña pausa entre requests para no saturar
            time.sleep(0.1)

        if self.image_path:
            image_bytes = Path(self.image_path).read_bytes()
            print(f"\n[BENCHMARK] Ejecutando {self.iterations} mediciones de /api/emotions/detect...")
            for i in range(self.iterations):
                result = self.benchmark_detect(image_bytes)
                if result['success']:
                    self.results['detect'].append(result['duration'])
                    suffix = " [degradado]" if result['degraded'] else ""
                    print(f"  [{i+1}/{self.iterations}] {result['duration']*1000:.2f} ms - "
                          f"{result['emotion']}{suffix}")
                else:
                    print(f"  [{i+1}/{self.iterations}] ERROR: {result.get('error')}")

                time.sleep(0.1)

        print("\n[OK] Benchmarks completados\n")

    def calculate_statistics(self) -> dict:
        """
        Calcula estadísticas sobre los resultados obtenidos.

        Returns:
            Diccionario con estadísticas por endpoint
        """
        stats = {}

        for endpoint, times in self.results.items():
            if not times:
                continue

            stats[endpoint] = {
                'count': len(times),
                'mean_ms': mean(times) * 1000,
                'median_ms': median(times) * 1000,
                'stdev_ms': stdev(times) * 1000 if len(times) > 1 else 0.0,
                'min_ms': min(times) * 1000,
                'max_ms': max(times) * 1000,
                'p95_ms': self._percentile(times, 95) * 1000
            }

        return stats

    def _percentile(self, data: list, percentile: int) -> float:
        """Calcula el percentil especificado."""
        if not data:
            return 0.0
        sorted_data = sorted(data)
        index = int(len(sorted_data) * percentile / 100)
        return sorted_data[min(index, len(sorted_data) - 1)]

    def print_results(self):
        """Imprime resultados en consola de forma legible."""
        stats = self.calculate_statistics()

        print(f"{'='*70}")
        print("RESULTADOS DE BENCHMARKS")
        print(f"{'='*70}\n")

        for endpoint, endpoint_stats in stats.items():
            print(f"[{endpoint.upper()}]")
            print(f"  Mediciones:      {endpoint_stats['count']}")
            print(f"  Media:           {endpoint_stats['mean_ms']:.2f} ms")
            print(f"  Mediana:         {endpoint_stats['median_ms']:.2f} ms")
            print(f"  Desv. Estándar:  {endpoint_stats['stdev_ms']:.2f} ms")
            print(f"  Mínimo:          {endpoint_stats['min_ms']:.2f} ms")
            print(f"  Máximo:          {endpoint_stats['max_ms']:.2f} ms")
            print(f"  Percentil 95:    {endpoint_stats['p95_ms']:.2f} ms")
            print()

        # La detección debe caber en el intervalo de sondeo de 2 segundos
        if 'detect' in stats:
            avg_latency = stats['detect']['mean_ms']
            print("[EVALUACION DEL SONDEO]")
            print(f"  Latencia media de detección: {avg_latency:.2f} ms")
            print(f"  ¿Cabe en el intervalo?:      {'SI' if avg_latency < 2000 else 'NO'}")
            print("  Criterio:                    < 2000 ms por intento")
            print()

        print(f"{'='*70}\n")

    def save_results(self, output_dir: str = 'metrics'):
        """
        Guarda los resultados en un archivo JSON.

        Args:
            output_dir: Directorio donde guardar los resultados
        """
        output_path = Path(output_dir)
        output_path.mkdir(exist_ok=True, parents=True)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        json_file = output_path / f'benchmark_{timestamp}.json'
        results_data = {
            'timestamp': datetime.now().isoformat(),
            'base_url': self.base_url,
            'iterations': self.iterations,
            'statistics': self.calculate_statistics(),
            'raw_results': self.results
        }

        with open(json_file, 'w', encoding='utf-8') as f:
            json.dump(results_data, f, indent=2, ensure_ascii=False)

        print(f"[OK] Resultados guardados en: {json_file}")


def main():
    """Función principal del script."""
    parser = argparse.ArgumentParser(
        description='Benchmark de rendimiento de la API de Moodify'
    )
    parser.add_argument(
        '--iterations', '-n',
        type=int,
        default=25,
        help='Número de iteraciones por endpoint (default: 25)'
    )
    parser.add_argument(
        '--url',
        type=str,
        default='http://localhost:5000',
        help='URL base del servidor (default: http://localhost:5000)'
    )
    parser.add_argument(
        '--image',
        type=str,
        default=None,
        help='Imagen JPEG/PNG para medir /api/emotions/detect'
    )
    parser.add_argument(
        '--output',
        type=str,
        default='metrics',
        help='Directorio de salida para resultados (default: metrics)'
    )

    args = parser.parse_args()

    runner = BenchmarkRunner(base_url=args.url, iterations=args.iterations,
                             image_path=args.image)
    runner.run_benchmarks()
    runner.print_results()
    runner.save_results(output_dir=args.output)


if __name__ == '__main__':
    main()

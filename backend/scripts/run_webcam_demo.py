"""
Script de demostración de captura de webcam con detección emocional y
recomendaciones musicales.

Este script muestra la vista previa de la webcam, ejecuta el bucle de
detección (sondeo cada 2 segundos hasta obtener una emoción con confianza
suficiente) y, si hay credenciales de Spotify, pide recomendaciones para la
emoción resuelta.

Uso:
    python backend/scripts/run_webcam_demo.py [--camera N] [--no-recommendations]

Controles:
    - Presiona 'r' para volver a detectar
    - Presiona 'q' para salir
"""

import argparse
import sys
import threading

import cv2

from moodify.config import load_config
from moodify.core.camera import WebcamCapture, normalize_bounding_box
from moodify.core.camera.webcam import HAVE_CURRENT_DATA, HAVE_NOTHING
from moodify.core.emotion import DeepFaceExpressionAdapter
from moodify.core.errors import MoodifyError
from moodify.core.music import RecommendationService, SpotifyClient
from moodify.core.pipeline import DetectionLoop, RESOLVED, FAILED
from moodify.core.storage import MemoryStore
from moodify.core.utils.metrics import get_metrics


class PreviewFrames:
    """
    Fuente de frames para el bucle de detección alimentada por la vista previa.

    OpenCV no permite leer la misma cámara desde dos hilos, así que el bucle
    principal lee los frames y el bucle de detección consume el último.
    """

    def __init__(self):
        self.ready_state = HAVE_NOTHING
        self._frame = None
        self._lock = threading.Lock()

    def push(self, frame) -> None:
        with self._lock:
            self._frame = frame
            self.ready_state = HAVE_CURRENT_DATA

    def current_frame(self):
        with self._lock:
            return None if self._frame is None else self._frame.copy()


def print_recommendations(service: RecommendationService, sample: dict) -> None:
    """Pide recomendaciones para la emoción resuelta y las imprime."""
    metrics = get_metrics()
    try:
        with metrics.measure('recommendation_fetch', metadata={'emotion': sample['emotion']}):
            result = service.get_recommendations(sample['emotion'], sample['confidence'])
    except MoodifyError as e:
        print(f"✗ No se pudieron obtener recomendaciones: {e.message}")
        return

    print(f"\nRecomendaciones ({result['genre']}) - sesión {result['session']['id']}:")
    for record in result['recommendations']:
        print(f"  [{record['matchScore']:3d}] {record['trackName']} - {record['artistName']}")
    print()


def draw_overlay(frame, loop: DetectionLoop) -> None:
    """Dibuja el estado de la detección sobre el frame."""
    height, width = frame.shape[:2]

    overlay = frame.copy()
    cv2.rectangle(overlay, (10, 10), (460, 130), (0, 0, 0), -1)
    cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)

    sample = loop.current_sample
    if loop.state == RESOLVED and sample:
        display_text = f"Emocion: {sample['emotion']} ({sample['confidence']}%)"
        if sample.get('degraded'):
            display_text += " [degradado]"
        color = (0, 255, 0)  # Verde

        box = normalize_bounding_box(sample.get('boundingBox'), width, height)
        if box:
            top_left = (int(box['left'] * width / 100), int(box['top'] * height / 100))
            bottom_right = (
                int((box['left'] + box['width']) * width / 100),
                int((box['top'] + box['height']) * height / 100)
            )
            cv2.rectangle(frame, top_left, bottom_right, color, 2)
    elif loop.state == FAILED:
        display_text = "Error en la deteccion"
        color = (0, 0, 255)  # Rojo
    else:
        display_text = f"Estado: {loop.state}"
        color = (0, 165, 255)  # Naranja

    cv2.putText(frame, display_text, (20, 50), cv2.FONT_HERSHEY_SIMPLEX,
                0.8, color, 2, cv2.LINE_AA)
    cv2.putText(frame, "'r' redetectar  'q' salir", (20, 100), cv2.FONT_HERSHEY_SIMPLEX,
                0.5, (200, 200, 200), 1, cv2.LINE_AA)


def main():
    """
    Función principal del script de demostración.

    Muestra la webcam, resuelve una emoción con el bucle de detección y
    pide recomendaciones hasta que el usuario presione 'q'.
    """
    parser = argparse.ArgumentParser(description='Demo de detección emocional con webcam')
    parser.add_argument('--camera', type=int, default=0, help='Índice de la cámara (default: 0)')
    parser.add_argument('--interval', type=float, default=2.0,
                        help='Segundos entre intentos de detección (default: 2.0)')
    parser.add_argument('--no-recommendations', action='store_true',
                        help='No pedir recomendaciones a Spotify')
    args = parser.parse_args()

    print("=" * 70)
    print("Demo Webcam + Detección Emocional - Moodify")
    print("=" * 70)
    print("\nPresiona 'r' para redetectar y 'q' para salir")
    print("\nNOTA: La primera detección puede tardar unos segundos (carga de modelos)\n")

    config = load_config()
    webcam = WebcamCapture(camera_index=args.camera)
    frames = PreviewFrames()
    adapter = DeepFaceExpressionAdapter(degraded_mode=config['DEGRADED_MODE'])

    service = None
    client = SpotifyClient(
        client_id=config['SPOTIFY_CLIENT_ID'],
        client_secret=config['SPOTIFY_CLIENT_SECRET'],
        market=config['SPOTIFY_MARKET']
    )
    if not args.no_recommendations:
        if client.is_configured:
            service = RecommendationService(client, MemoryStore())
        else:
            print("⚠ Credenciales de Spotify no configuradas: solo detección\n")

    def on_result(sample):
        print(f"✓ Emoción detectada: {sample['emotion']} ({sample['confidence']}%)"
              + (" [modo degradado]" if sample.get('degraded') else ""))
        if service is not None:
            print_recommendations(service, sample)

    def on_error(error):
        print(f"✗ Error de detección: {error}")

    loop = DetectionLoop(adapter, frames, interval=args.interval,
                         on_result=on_result, on_error=on_error)

    try:
        webcam.start()

        props = webcam.get_properties()
        print("Propiedades de la cámara:")
        print(f"  - Resolución: {props.get('width')}x{props.get('height')}")
        print(f"  - FPS: {props.get('fps')}")
        print()

        loop.start()
        frame_count = 0

        while True:
            success, frame = webcam.read()
            if not success:
                print("Error: No se pudo leer el frame")
                break

            frame_count += 1
            frames.push(frame)

            display = frame.copy()
            draw_overlay(display, loop)
            cv2.imshow('Moodify - Deteccion Emocional', display)

            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                print("\n✓ Saliendo del demo...")
                break
            if key == ord('r'):
                print("↻ Redetectando...")
                loop.redetect()

        print(f"✓ Total de frames mostrados: {frame_count}")

    except RuntimeError as e:
        print(f"✗ Error: {e}")
        print("\nSoluciones posibles:")
        print("  1. Verifica que la webcam esté conectada")
        print("  2. Asegúrate de que ninguna otra aplicación esté usando la cámara")
        print("  3. Verifica los permisos de acceso a la cámara")
        sys.exit(1)

    except KeyboardInterrupt:
        print("\n\n✓ Interrumpido por el usuario")

    finally:
        loop.close(timeout=adapter.timeout)
        adapter.close()
        webcam.release()
        cv2.destroyAllWindows()
        get_metrics().print_summary()
        print("✓ Recursos liberados correctamente")


if __name__ == "__main__":
    main()

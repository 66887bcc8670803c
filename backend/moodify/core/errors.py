"""
Taxonomía de errores del sistema Moodify.

Cada error lleva un mensaje estable y presentable al usuario. Las rutas
Flask traducen estas clases a códigos HTTP; el resto del sistema las
propaga sin silenciarlas.

Política de enmascaramiento:
    - CapabilityError y ProviderAuthError nunca se sustituyen por
      resultados sintéticos.
    - Solo los errores genéricos de inferencia (incluido el timeout) pueden
      sustituirse por una muestra en modo degradado.
"""

from typing import Optional


class MoodifyError(RuntimeError):
    """Error base del sistema con mensaje presentable al usuario."""

    default_message = "Error interno del sistema"

    def __init__(self, message: Optional[str] = None, detail=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.detail = detail


class CapabilityError(MoodifyError):
    """El entorno no soporta la inferencia (backend o aceleración ausente)."""

    default_message = "Este entorno no soporta la detección facial de emociones"


class ConnectivityError(MoodifyError):
    """No se pudieron descargar o cargar los pesos del modelo."""

    default_message = (
        "No se pudieron cargar los modelos de detección facial. "
        "Comprueba tu conexión a internet e inténtalo de nuevo."
    )


class InferenceTimeoutError(MoodifyError):
    """La inferencia superó el presupuesto de tiempo."""

    default_message = "La detección facial superó el tiempo máximo"


class ProviderAuthError(MoodifyError):
    """No se pudo obtener la credencial del proveedor musical."""

    default_message = "Credenciales de Spotify no configuradas o inválidas"


class ProviderConfigError(ProviderAuthError):
    """Faltan el client id o el client secret del proveedor."""

    default_message = "Credenciales de Spotify no configuradas"


class ProviderQueryError(MoodifyError):
    """Fallaron tanto la consulta principal como la búsqueda de respaldo."""

    default_message = "No se pudieron obtener recomendaciones de Spotify"

    def __init__(self, message: Optional[str] = None, detail=None,
                 status: Optional[int] = None):
        super().__init__(message, detail)
        self.status = status


class EmptyResultError(MoodifyError):
    """La consulta fue válida pero no devolvió pistas."""

    default_message = "No se encontraron pistas para el género seleccionado"


class ValidationError(MoodifyError):
    """Payload del cliente mal formado."""

    default_message = "Datos de emoción inválidos"

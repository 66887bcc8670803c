"""
Módulo del bucle de detección emocional.
"""

from .detection_loop import DetectionLoop, PollingCycle, IDLE, LOADING, POLLING, RESOLVED, FAILED

__all__ = ['DetectionLoop', 'PollingCycle', 'IDLE', 'LOADING', 'POLLING', 'RESOLVED', 'FAILED']

"""
Moodify - recomendaciones musicales a partir de la emoción facial.
"""

__version__ = "0.4.0"

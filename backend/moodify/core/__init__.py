"""
Núcleo del sistema Moodify: detección emocional y recomendación musical.
"""

"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras de datos del diff (metadata, resultados, resumen).
- El dominio no conoce HTTP, CLI ni Jinja2: solo conceptos del problema.
"""

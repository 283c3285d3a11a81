"""Servicios del Core (caché, resolución de fuentes, diff y orquestación).

Por qué un paquete:
- Cada servicio es testeable por separado; `diff_session` los compone.
"""

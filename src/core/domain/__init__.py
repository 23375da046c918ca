"""Modelos y errores del dominio.

Estructuras de datos puras (Pydantic v2) y la jerarquía de errores del
servicio. El dominio no conoce FastAPI, PyMuPDF ni httpx.
"""

"""Contratos (Protocol) del Core.

Los adaptadores concretos (HTTP, PDF) los implementan; los servicios dependen
solo de estas abstracciones y los tests pueden sustituirlos por stubs.
"""

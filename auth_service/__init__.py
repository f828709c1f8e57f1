"""Servicio de autenticación: registro y login con contraseña."""

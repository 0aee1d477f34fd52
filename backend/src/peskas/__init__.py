"""Peskas: backend del Dashboard de monitoreo pesquero."""

__version__ = "0.3.0"

"""Configuration module for the TMF logic proxy."""
from .settings import AppConfig, EndpointConfig, load_settings

__all__ = ["AppConfig", "EndpointConfig", "load_settings"]

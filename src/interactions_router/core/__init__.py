"""Core helpers shared by the integration and surface layers."""

from .app import create_app, environ_bindings, load_interactions_app

__all__ = ["create_app", "environ_bindings", "load_interactions_app"]

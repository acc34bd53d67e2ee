"""Handler modules for Kopf events."""
from .resources import register_handlers
from .startup import configure_operator

__all__ = ["register_handlers", "configure_operator"]

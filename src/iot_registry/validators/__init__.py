from .entity_validators import prepare_configuration, prepare_device

__all__ = [
    "prepare_configuration",
    "prepare_device",
]

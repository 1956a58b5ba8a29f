"""Field type registry and the built-in renderers."""

from forma.fields.registry import FieldRegistry, field_type, registry

# Importing the module registers the built-in types on ``registry``
from forma.fields import renderers  # noqa: F401
from forma.fields.renderers import NONCE_FIELD_NAME, REFERER_FIELD_NAME

__all__ = [
    "FieldRegistry",
    "NONCE_FIELD_NAME",
    "REFERER_FIELD_NAME",
    "field_type",
    "registry",
]

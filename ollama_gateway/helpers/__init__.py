"""Helper functions kept out of the declarative config modules."""

from .settings import load_config, validate_config
from .io import (
    dump_json,
    content_hash,
    exclusive_lock,
    write_json_atomic,
    write_text_atomic,
)

__all__ = [
    "load_config",
    "validate_config",
    "dump_json",
    "content_hash",
    "exclusive_lock",
    "write_json_atomic",
    "write_text_atomic",
]

"""Loaders for declarative card catalogs."""

from .json_loader import (
    dump_card,
    load_catalog_from_json,
    parse_card,
    parse_catalog_dict,
    validate_catalog_dict,
    validate_catalog_file,
)

__all__ = [
    "dump_card",
    "load_catalog_from_json",
    "parse_card",
    "parse_catalog_dict",
    "validate_catalog_dict",
    "validate_catalog_file",
]

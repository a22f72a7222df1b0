"""Schema metadata providers and input file validation.

Structural validation reads element metadata through the
:class:`SchemaProvider` protocol. Input files (schema metadata, rule sets,
hint catalogs) are checked against bundled JSON Schemas before parsing.
"""

from .provider import DictSchemaProvider, SchemaProvider, load_schema_file
from .validator import InputFileValidator, SchemaViolation

__all__ = [
    "DictSchemaProvider",
    "InputFileValidator",
    "SchemaProvider",
    "SchemaViolation",
    "load_schema_file",
]

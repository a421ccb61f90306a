"""
app/mappers package marker.
"""

from app.mappers.schema_detector import ColumnMapping, SchemaDetection, SchemaDetector, SourceSchema

__all__ = [
    "ColumnMapping",
    "SchemaDetection",
    "SchemaDetector",
    "SourceSchema",
]

"""
Firestore query and document helpers.

Queries use the keyword filter API (FieldFilter); the positional
where(field, op, value) form is deprecated in google-cloud-firestore.
"""

from enum import Enum
from typing import Any, Dict

from google.cloud.firestore_v1.base_query import FieldFilter


def where_filter(query, field_path: str, op_string: str, value):
    """
    Usage:
        query = where_filter(collection, "status", "==", "approved")
        query = where_filter(query, "user_id", "==", user_id)
    """
    return query.where(filter=FieldFilter(field_path, op_string, value))


def to_document(data: Dict[str, Any]) -> Dict[str, Any]:
    """Plain dict Firestore can store: enums become their values."""
    return {key: (value.value if isinstance(value, Enum) else value) for key, value in data.items()}

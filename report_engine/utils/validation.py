"""Input validation utilities for the report engine."""

from typing import Any, Dict

from jsonschema import validate, ValidationError as JsonSchemaValidationError

from .exceptions import ValidationError

# "#RRGGBB", "RRGGBB" or "AARRGGBB"
COLOR_PATTERN = r"^#?([0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$"


def validate_json_schema(data: Dict[str, Any], schema: Dict[str, Any]) -> None:
    """Validate data against JSON schema."""
    try:
        validate(instance=data, schema=schema)
    except JsonSchemaValidationError as e:
        raise ValidationError(f"Schema validation failed: {e.message}")


_POSITIVE_NUMBER = {"type": "number", "exclusiveMinimum": 0}
_POSITIVE_INTEGER = {"type": "integer", "minimum": 1}

REPORT_SETTINGS_SCHEMA = {
    "type": "object",
    "properties": {
        "company_banner": {"type": "string", "minLength": 1},
        "layout": {
            "type": "object",
            "properties": {
                "banner_columns": _POSITIVE_INTEGER,
                "default_column_count": _POSITIVE_INTEGER,
                "default_column_width": _POSITIVE_NUMBER,
                "image_column_width": _POSITIVE_NUMBER,
                "photo_row_height": _POSITIVE_NUMBER,
                "signature_row_height": _POSITIVE_NUMBER,
                "banner_row_height": _POSITIVE_NUMBER,
                "title_row_height": _POSITIVE_NUMBER,
                "header_row_height": _POSITIVE_NUMBER,
                "summary_row_height": _POSITIVE_NUMBER,
                "data_row_height": _POSITIVE_NUMBER,
                "image_inset_emu": {"type": "integer", "minimum": 0},
            },
        },
        "formats": {
            "type": "object",
            "properties": {
                "report_date": {"type": "string"},
                "record_date": {"type": "string"},
                "file_timestamp": {"type": "string"},
            },
        },
        "image_processing": {
            "type": "object",
            "properties": {
                "max_dimension_px": _POSITIVE_INTEGER,
                "max_size_kb": _POSITIVE_INTEGER,
                "initial_quality": {"type": "integer", "minimum": 1, "maximum": 95},
                "quality_step": _POSITIVE_INTEGER,
                "min_quality": {"type": "integer", "minimum": 1, "maximum": 95},
            },
        },
        "output": {
            "type": "object",
            "properties": {
                "directory": {"type": "string"},
                "disambiguate_names": {"type": "boolean"},
            },
        },
        "temp_files": {
            "type": "object",
            "properties": {
                "directory": {"type": ["string", "null"]},
                "prefix": {"type": "string", "minLength": 1},
            },
        },
    },
}


def validate_config_structure(config: Dict[str, Any]) -> None:
    """Validate configuration structure."""
    schema = {
        "type": "object",
        "properties": {
            "version": {"type": "string"},
            "report_settings": REPORT_SETTINGS_SCHEMA,
        },
        "required": ["report_settings"],
    }
    validate_json_schema(config, schema)


_RECORD_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "notes": {"type": "string"},
        "image": {"type": ["string", "null"]},
        "timestamp": {"type": ["string", "number"]},
        "status": {"type": "string"},
        "kind": {"type": "string", "enum": ["plain", "work_order", "security"]},
        "work_order_details": {"type": "string"},
        "security_status": {
            "type": "string",
            "enum": ["NOT_SET", "ACTIVE", "INACTIVE"],
        },
        "machine_id": {"type": ["integer", "null"]},
        "machine_title": {"type": "string"},
    },
    "required": ["title"],
}


def validate_export_payload(payload: Dict[str, Any]) -> None:
    """Validate a record export payload loaded from JSON."""
    schema = {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "records": {"type": "array", "items": _RECORD_SCHEMA},
            "machines": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "integer"},
                        "title": {"type": "string"},
                        "operator_ids": {
                            "type": "array",
                            "items": {"type": "integer"},
                        },
                    },
                    "required": ["id"],
                },
            },
            "operators": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "integer"},
                        "name": {"type": "string"},
                        "department": {"type": "string"},
                    },
                    "required": ["id", "name"],
                },
            },
            "operator_names": {"type": "array", "items": {"type": "string"}},
            "signatures": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "operator_name": {"type": "string"},
                        "image": {"type": ["string", "null"]},
                    },
                    "required": ["operator_name"],
                },
            },
        },
        "required": ["records"],
    }
    validate_json_schema(payload, schema)


def validate_template_payload(payload: Dict[str, Any]) -> None:
    """Validate a user-authored template loaded from JSON."""
    cell_style = {
        "type": "object",
        "properties": {
            "bold": {"type": "boolean"},
            "italic": {"type": "boolean"},
            "background_color": {"type": ["string", "null"], "pattern": COLOR_PATTERN},
            "text_color": {"type": ["string", "null"], "pattern": COLOR_PATTERN},
            "font_size": {"type": "integer", "minimum": 1},
            "alignment": {"type": "string", "enum": ["LEFT", "CENTER", "RIGHT"]},
        },
    }
    schema = {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "description": {"type": "string"},
            "columns": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "integer"},
                        "name": {"type": "string"},
                        "width": {"type": "number", "exclusiveMinimum": 0},
                        "data_type": {
                            "type": "string",
                            "enum": ["TEXT", "NUMBER", "DATE", "BOOLEAN", "IMAGE"],
                        },
                    },
                    "required": ["id", "name"],
                },
            },
            "rows": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "row_index": {"type": "integer"},
                        "is_header": {"type": "boolean"},
                        "height": {"type": "number", "exclusiveMinimum": 0},
                        "cells": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "column_id": {"type": "integer"},
                                    "value": {"type": ["string", "number", "null"]},
                                    "style": cell_style,
                                },
                                "required": ["column_id"],
                            },
                        },
                    },
                },
            },
        },
        "required": ["name", "columns"],
    }
    validate_json_schema(payload, schema)

"""
Tool argument validation against JSON Schema input schemas.
"""

from typing import Any

import jsonschema


class SchemaValidationError(Exception):
    """Raised when tool arguments fail schema validation."""

    pass


class ArgumentValidator:
    """
    Validates tool arguments against JSON Schema definitions.

    Uses JSON Schema 2020-12, the draft MCP tool input schemas are written
    against.
    """

    def __init__(self) -> None:
        self._validator_class = jsonschema.Draft202012Validator

    def validate_args(
        self, args: dict[str, Any], schema: dict[str, Any], tool_name: str
    ) -> None:
        """
        Validate tool arguments against a JSON schema.

        Args:
            args: Arguments to validate
            schema: JSON schema to validate against
            tool_name: Name of the tool (for error messages)

        Raises:
            SchemaValidationError: If validation fails with descriptive error message
        """
        try:
            validator = self._validator_class(schema)
            errors = sorted(validator.iter_errors(args), key=lambda e: list(e.path))
        except jsonschema.SchemaError as e:
            raise SchemaValidationError(
                f"Tool '{tool_name}' has invalid JSON schema: {e.message}"
            )

        if not errors:
            return

        error_messages = []
        for error in errors:
            field_path = (
                ".".join(str(p) for p in error.absolute_path)
                if error.absolute_path
                else "root"
            )

            if error.validator == "required":
                missing_field = (
                    error.message.split("'")[1] if "'" in error.message else "unknown"
                )
                error_messages.append(f"Missing required field: {missing_field}")
            elif error.validator == "type":
                expected_type = error.schema.get("type", "unknown")
                error_messages.append(
                    f"Field '{field_path}' has invalid type. "
                    f"Expected {expected_type}, got {type(error.instance).__name__}"
                )
            elif error.validator == "additionalProperties":
                error_messages.append(
                    f"Field '{field_path}' contains unexpected properties. "
                    f"Only defined properties are allowed"
                )
            else:
                error_messages.append(f"Field '{field_path}': {error.message}")

        raise SchemaValidationError(
            f"Tool '{tool_name}' argument validation failed: {'; '.join(error_messages)}"
        )

    def validate_schema(self, schema: dict[str, Any], tool_name: str) -> None:
        """
        Validate that a JSON schema is well-formed.

        Raises:
            SchemaValidationError: If schema is invalid
        """
        try:
            self._validator_class.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise SchemaValidationError(
                f"Tool '{tool_name}' has invalid JSON schema: {e.message}"
            )

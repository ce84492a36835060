"""Custom exceptions for configuration management."""

from typing import List, Optional

from pydantic import ValidationError


class ConfigurationError(Exception):
    """
    Exception raised when configuration validation fails.

    Carries the individual validation errors and suggestions so the CLI can
    print them as a numbered list.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize ConfigurationError.

        Args:
            message: Primary error message
            errors: List of specific validation errors
            suggestions: List of helpful suggestions to fix the errors
        """
        self.message = message
        self.errors = errors or []
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]

        if self.errors:
            parts.append("\nValidation Errors:")
            for i, error in enumerate(self.errors, 1):
                parts.append(f"  {i}. {error}")

        if self.suggestions:
            parts.append("\nSuggestions:")
            for suggestion in self.suggestions:
                parts.append(f"  - {suggestion}")

        return "\n".join(parts)

    @classmethod
    def from_validation_error(
        cls,
        error: ValidationError,
        message: str = "Configuration validation failed",
        suggestions: Optional[List[str]] = None,
    ) -> "ConfigurationError":
        """Convert a pydantic ValidationError into a ConfigurationError.

        Args:
            error: ValidationError raised by model validation
            message: Primary error message
            suggestions: Suggestions to attach

        Returns:
            ConfigurationError listing one entry per failing field
        """
        errors = []
        for item in error.errors():
            field_path = " -> ".join(str(loc) for loc in item["loc"])
            error_type = item["type"]

            if error_type == "missing":
                errors.append(f"Missing required field: {field_path}")
            elif error_type in ("string_type", "int_type", "int_parsing", "bool_type", "list_type"):
                expected_type = error_type.split("_")[0]
                errors.append(
                    f"Invalid type for '{field_path}': expected {expected_type}, got {item.get('input')}"
                )
            elif error_type == "union_tag_invalid" or error_type == "union_tag_not_found":
                errors.append(
                    f"Invalid rule kind at '{field_path}': expected 'date_threshold' or 'status_match'"
                )
            elif "enum" in error_type:
                errors.append(f"Invalid value for '{field_path}': {item['msg']}")
            else:
                location = f"{field_path}: " if field_path else ""
                errors.append(f"{location}{item['msg']}")

        return cls(
            message,
            errors=errors,
            suggestions=suggestions
            or [
                "Review config.example.yaml for correct format",
                "Check that all required fields are present",
                "Verify field types match the expected schema",
            ],
        )

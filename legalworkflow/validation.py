"""
Legal Workflow SDK - Input validation helpers.

Provides validation functions for checking caller input before any request
or staging queue is modified.
"""

from typing import Any, Iterable, Optional

from .exceptions import ValidationError as SDKValidationError


class InputValidationError(SDKValidationError):
    """Raised when input validation fails before any state is changed."""

    def __init__(self, message: str, field: str = None, value: Any = None):
        super().__init__(message, status_code=None, response=None)
        self.field = field
        self.value = value


ValidationError = InputValidationError

# Characters the document library refuses in file and folder names.
INVALID_FILENAME_CHARS = ["~", '"', "#", "%", "&", "*", ":", "<", ">", "?", "/", "\\", "{", "|", "}"]

MAX_FILENAME_LENGTH = 128


def validate_required(value: Any, field_name: str) -> None:
    """Validate that a required field is not None or empty."""
    if value is None:
        raise ValidationError(f"{field_name} is required", field=field_name)
    if isinstance(value, str) and not value.strip():
        raise ValidationError(f"{field_name} cannot be empty", field=field_name, value=value)


def validate_string_length(
    value: str,
    field_name: str,
    min_length: int = None,
    max_length: int = None
) -> None:
    """Validate string length constraints."""
    if value is None:
        return

    if min_length is not None and len(value.strip()) < min_length:
        raise ValidationError(
            f"{field_name} must be at least {min_length} characters",
            field=field_name,
            value=value
        )

    if max_length is not None and len(value) > max_length:
        raise ValidationError(
            f"{field_name} must be at most {max_length} characters",
            field=field_name,
            value=value
        )


def validate_positive_int(value: int, field_name: str) -> None:
    """Validate that a number is a positive integer."""
    if value is None:
        return

    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be an integer",
            field=field_name,
            value=value
        )

    if value <= 0:
        raise ValidationError(
            f"{field_name} must be positive",
            field=field_name,
            value=value
        )


def validate_non_negative(value: float, field_name: str) -> None:
    """Validate that a number is non-negative."""
    if value is None:
        return

    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a number",
            field=field_name,
            value=value
        )

    if value < 0:
        raise ValidationError(
            f"{field_name} cannot be negative",
            field=field_name,
            value=value
        )


def validate_in_list(value: Any, field_name: str, allowed_values: list) -> None:
    """Validate that a value is in a list of allowed values."""
    if value is None:
        return

    if value not in allowed_values:
        raise ValidationError(
            f"{field_name} must be one of: {', '.join(str(v) for v in allowed_values)}",
            field=field_name,
            value=value
        )


def get_invalid_characters(name: str) -> list[str]:
    """Return the characters in ``name`` that the document library rejects."""
    return [char for char in INVALID_FILENAME_CHARS if char in name]


def split_extension(file_name: str) -> tuple[str, str]:
    """Split ``report.final.pdf`` into ``("report.final", ".pdf")``.

    Names without a dot, or whose only dot is the first character, have no extension.
    """
    index = file_name.rfind(".")
    if index <= 0:
        return file_name, ""
    return file_name[:index], file_name[index:]


def validate_filename(value: str, field_name: str = "file_name") -> None:
    """Validate a document file name against the library's naming rules."""
    if value is None or not value.strip():
        raise ValidationError(f"{field_name} cannot be empty", field=field_name, value=value)

    invalid = get_invalid_characters(value)
    if invalid:
        raise ValidationError(
            f"{field_name} contains invalid characters: {', '.join(invalid)}",
            field=field_name,
            value=value
        )

    if len(value) > MAX_FILENAME_LENGTH:
        raise ValidationError(
            f"{field_name} is too long (maximum {MAX_FILENAME_LENGTH} characters)",
            field=field_name,
            value=value
        )

    if value[0] == " " or value[-1] == " ":
        raise ValidationError(
            f"{field_name} cannot start or end with a space",
            field=field_name,
            value=value
        )

    if value[-1] == ".":
        raise ValidationError(
            f"{field_name} cannot end with a period",
            field=field_name,
            value=value
        )


def validate_unique_name(
    value: str,
    existing_names: Iterable[str],
    field_name: str = "file_name",
) -> None:
    """Validate that ``value`` does not collide (case-insensitively) with ``existing_names``."""
    lowered = value.lower()
    for name in existing_names:
        if name.lower() == lowered:
            raise ValidationError(
                f"A document named '{value}' already exists",
                field=field_name,
                value=value
            )


def validate_reason(value: Optional[str], field_name: str = "reason") -> None:
    """Validate the free-text reason required for hold and cancel actions."""
    validate_required(value, field_name)
    validate_string_length(value, field_name, max_length=4000)


def validate_rush_rationale(
    rationale: Optional[str],
    is_rush: bool,
    min_length: int = 10,
) -> None:
    """Validate that a rush request explains why it needs the shorter turnaround."""
    if not is_rush:
        return
    validate_required(rationale, "rush_rationale")
    validate_string_length(rationale, "rush_rationale", min_length=min_length)


def validate_submission(
    title: Optional[str],
    target_return_date: Any,
    turnaround_days: Optional[int],
) -> None:
    """Validate the fields every request needs before it leaves Draft."""
    validate_required(title, "title")
    validate_string_length(title, "title", min_length=1, max_length=255)
    validate_required(target_return_date, "target_return_date")
    validate_required(turnaround_days, "turnaround_days")
    validate_positive_int(turnaround_days, "turnaround_days")

"""
Upload Validation
=================
Pydantic models for uploaded image and XMP files, plus the content check
that an XMP document carries Camera Raw settings.
"""

from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from xmpcube.api.config import (
    ALLOWED_IMAGE_TYPES,
    ALLOWED_XMP_TYPES,
    MAX_IMAGE_SIZE,
    MAX_XMP_SIZE,
    REQUIRED_XMP_ELEMENTS,
    XMP_EXTENSION,
)

MB = 1024 * 1024

# Clients often send .xmp sidecars without a useful content type
GENERIC_TYPES = ("", "application/octet-stream")


class ValidationResult(BaseModel):
    is_valid: bool
    error: Optional[str] = None


class ImageUpload(BaseModel):
    name: str = Field(min_length=1)
    content_type: str
    size: int = Field(ge=0)

    @field_validator("content_type")
    @classmethod
    def supported_type(cls, v: str) -> str:
        if v not in ALLOWED_IMAGE_TYPES:
            raise ValueError(
                f"Unsupported image type: {v}. Supported types: {', '.join(ALLOWED_IMAGE_TYPES)}"
            )
        return v

    @field_validator("size")
    @classmethod
    def within_limit(cls, v: int) -> int:
        if v > MAX_IMAGE_SIZE:
            raise ValueError(
                f"File size ({round(v / MB)}MB) exceeds maximum allowed size ({MAX_IMAGE_SIZE // MB}MB)"
            )
        return v


class XMPUpload(BaseModel):
    name: str = Field(min_length=1)
    content_type: str = ""
    size: int = Field(ge=0)

    @field_validator("name")
    @classmethod
    def xmp_extension(cls, v: str) -> str:
        if not v.lower().endswith(XMP_EXTENSION):
            raise ValueError("File must have .xmp extension")
        return v

    @field_validator("content_type")
    @classmethod
    def xml_type(cls, v: str) -> str:
        if v not in ALLOWED_XMP_TYPES and v not in GENERIC_TYPES:
            raise ValueError(f"Unsupported XMP type: {v}. File must be an XML or XMP file.")
        return v

    @field_validator("size")
    @classmethod
    def within_limit(cls, v: int) -> int:
        if v > MAX_XMP_SIZE:
            raise ValueError(
                f"File size ({round(v / MB)}MB) exceeds maximum allowed size ({MAX_XMP_SIZE // MB}MB)"
            )
        return v


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid file format"
    message = errors[0].get("msg", "Invalid file format")
    # pydantic prefixes messages raised from validators
    return message.removeprefix("Value error, ")


def validate_image_file(name: Optional[str], content_type: Optional[str], size: int) -> ValidationResult:
    if not name:
        return ValidationResult(is_valid=False, error="No image file provided")
    try:
        ImageUpload(name=name, content_type=content_type or "", size=size)
    except ValidationError as e:
        return ValidationResult(is_valid=False, error=_first_error(e))
    return ValidationResult(is_valid=True)


def validate_xmp_file(name: Optional[str], content_type: Optional[str], size: int) -> ValidationResult:
    if not name:
        return ValidationResult(is_valid=False, error="No XMP file provided")
    try:
        XMPUpload(name=name, content_type=content_type or "", size=size)
    except ValidationError as e:
        return ValidationResult(is_valid=False, error=_first_error(e))
    return ValidationResult(is_valid=True)


def validate_xmp_content(content: str) -> ValidationResult:
    """Cheap structural check before parsing."""
    if "<?xml" not in content or "<x:xmpmeta" not in content:
        return ValidationResult(
            is_valid=False,
            error="Invalid XMP format: missing XML declaration or xmpmeta tag",
        )
    if "crs:" not in content:
        return ValidationResult(
            is_valid=False,
            error="Invalid XMP format: missing Camera Raw Settings namespace",
        )

    missing = [name for name in REQUIRED_XMP_ELEMENTS if f"crs:{name}" not in content]
    if missing:
        return ValidationResult(
            is_valid=False,
            error=f"Invalid XMP format: missing required elements: {', '.join(missing)}",
        )
    return ValidationResult(is_valid=True)

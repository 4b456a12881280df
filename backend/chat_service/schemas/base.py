"""
Base schema that provides common configuration and validation patterns.
Used as the building block for request schemas.
"""

from pydantic import BaseModel, ConfigDict

class BaseSchema(BaseModel):
    """
    Base schema with common configuration for all schemas.

    Features:
    - Extra fields are ignored (security)
    - Surrounding whitespace stripped from strings
    - Validation on assignment
    """

    model_config = ConfigDict(
        # Ignore extra fields (security)
        extra="ignore",
        str_strip_whitespace=True,
        # Validate on assignment
        validate_assignment=True
    )

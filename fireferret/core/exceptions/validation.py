"""
Validation Exceptions

All exceptions related to argument and option validation. These are raised
before any store I/O happens.

Author: System Architect
Date: 2026-10-12
"""

from fireferret.core.exceptions.base import FerretError


class ValidationError(FerretError):
    """
    Raised when caller input validation fails.

    This is the base class for all validation-related errors.
    """
    pass


class InvalidArgumentsError(ValidationError):
    """
    Raised when arguments or options are malformed.

    Common causes:
    - Document ID is not a 24-character hex string
    - Options is not a mapping
    - Pagination page/size are not numbers
    - Pagination page is zero (pages start at 1)
    - Document passed to the codec is not an object

    Example:
        raise InvalidArgumentsError(
            "page is zero -- pagination begins with page = 1",
            scope="options::validate_pagination",
            details={"pagination": {"page": 0, "size": 10}}
        )
    """
    pass

"""Form validation package."""

from clientist.validation.validator import FormValidationError, FormValidator

__all__ = ["FormValidationError", "FormValidator"]

"""What ``validate()`` returns."""

from dataclasses import dataclass
from typing import Any

from roost.errors import ValidationError


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Accepted values that passed, plus one message per failing field.

    Falsy when any field failed::

        result = validate(route.accept, route.validations, data)
        if not result:
            return {"errors": result.errors}
    """

    data: dict[str, Any]
    errors: dict[str, str]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.is_valid

    def raise_for_errors(self) -> None:
        """Raise ``ValidationError`` carrying every field error, if any."""
        if self.errors:
            raise ValidationError(self.errors)

"""Domain-specific exceptions"""

from escompte_gateway.domain.validation import ValidationResult


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class RecordNotFoundError(DomainException):
    """No record with the given identifier in the collection"""

    def __init__(self, entity: str, record_id: str):
        super().__init__(f"{entity} {record_id} not found")
        self.entity = entity
        self.record_id = record_id


class ValidationFailedError(DomainException):
    """A write was rejected by validation; carries the full per-field result"""

    def __init__(self, message: str, result: ValidationResult):
        super().__init__(message)
        self.result = result


class StructuralValidationError(ValidationFailedError):
    """Type, range, precision or required-field check failed"""

    pass


class BusinessRuleViolation(ValidationFailedError):
    """Record is well-formed but breaks a business rule (ceiling, future date)"""

    pass


class UnsupportedExportFormatError(DomainException):
    """Export requested in a format other than csv or excel/xlsx"""

    pass

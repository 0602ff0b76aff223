"""
Business validation rules for escomptes, refinancements and the ceiling.

Every validator runs in two phases:
1. Structural checks (type, range, decimal places, required fields) -> errors
2. Business checks (ceiling breach, near-ceiling, stale/future/weekend dates)
   -> errors and non-blocking warnings, evaluated only when phase 1 passed

Errors block the write, warnings are advisory. Both are keyed by the wire
field name so a form can show them inline.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from escompte_gateway.domain import money
from escompte_gateway.domain.impact import compute_impact
from escompte_gateway.domain.models import RefinancementStatus
from escompte_gateway.utils import date_utils

MAX_AMOUNT = Decimal("999999999.99")
MAX_DECIMALS = 2
LABEL_MIN_LENGTH = 3
LABEL_MAX_LENGTH = 255
FORBIDDEN_LABEL_CHARS = set("<>\"'&")
CONDITIONS_MAX_LENGTH = 500
MAX_DURATION_MONTHS = 360
DATE_RANGE_YEARS = 5

NEAR_CEILING_PERCENT = 90
LARGE_AMOUNT_RATIO = 10  # warn when an amount exceeds 1/10 of the ceiling
CEILING_LOW_WARNING = 1_000
CEILING_HIGH_WARNING = 10_000_000


class ValidationPhase(str, Enum):
    STRUCTURAL = "structural"
    BUSINESS = "business"


@dataclass
class ValidationResult:
    """Per-field errors and warnings produced by one validation call"""

    errors: Dict[str, List[str]] = field(default_factory=dict)
    warnings: Dict[str, List[str]] = field(default_factory=dict)
    failed_phase: Optional[ValidationPhase] = None

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, field_name: str, message: str, phase: ValidationPhase = ValidationPhase.STRUCTURAL) -> None:
        self.errors.setdefault(field_name, []).append(message)
        # Structural failures take precedence when both phases reported
        if self.failed_phase is None or phase == ValidationPhase.STRUCTURAL:
            self.failed_phase = phase

    def add_warning(self, field_name: str, message: str) -> None:
        self.warnings.setdefault(field_name, []).append(message)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        for name, messages in other.errors.items():
            for message in messages:
                self.add_error(name, message, other.failed_phase or ValidationPhase.STRUCTURAL)
        for name, messages in other.warnings.items():
            self.warnings.setdefault(name, []).extend(messages)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": self.errors, "warnings": self.warnings}


# --- structural helpers --------------------------------------------------


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    try:
        return math.isfinite(value)
    except (TypeError, ValueError):
        return False


def _decimal_places(value: Any) -> int:
    try:
        exponent = Decimal(str(value)).normalize().as_tuple().exponent
    except InvalidOperation:
        return 0
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def _check_amount(result: ValidationResult, value: Any, field_name: str, label: str = "Amount") -> None:
    if not _is_number(value):
        result.add_error(field_name, f"{label} must be a valid number")
        return
    if value <= 0:
        result.add_error(field_name, f"{label} must be positive")
    if _decimal_places(value) > MAX_DECIMALS:
        result.add_error(field_name, f"{label} cannot have more than {MAX_DECIMALS} decimal places")
    if Decimal(str(value)) > MAX_AMOUNT:
        result.add_error(field_name, f"{label} cannot exceed {MAX_AMOUNT:,}")


def _check_non_negative(result: ValidationResult, value: Any, field_name: str, label: str) -> None:
    if not _is_number(value):
        result.add_error(field_name, f"{label} must be a valid number")
        return
    if value < 0:
        result.add_error(field_name, f"{label} cannot be negative")
    if _decimal_places(value) > MAX_DECIMALS:
        result.add_error(field_name, f"{label} cannot have more than {MAX_DECIMALS} decimal places")


def _check_label(result: ValidationResult, value: Any, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        result.add_error(field_name, "Label is required")
        return
    trimmed = value.strip()
    if len(trimmed) < LABEL_MIN_LENGTH:
        result.add_error(field_name, f"Label must contain at least {LABEL_MIN_LENGTH} characters")
    if len(trimmed) > LABEL_MAX_LENGTH:
        result.add_error(field_name, f"Label cannot exceed {LABEL_MAX_LENGTH} characters")
    if FORBIDDEN_LABEL_CHARS.intersection(trimmed):
        result.add_error(field_name, "Label contains forbidden characters (< > \" ' &)")


def _check_date(result: ValidationResult, value: Any, field_name: str, today: date) -> Optional[date]:
    parsed = date_utils.parse_record_date(value)
    if parsed is None:
        result.add_error(field_name, "Date is not a valid calendar date")
        return None
    if parsed > date_utils.years_from(today, DATE_RANGE_YEARS):
        result.add_error(field_name, f"Date cannot be more than {DATE_RANGE_YEARS} years ahead")
    if parsed < date_utils.years_from(today, -DATE_RANGE_YEARS):
        result.add_error(field_name, f"Date cannot be more than {DATE_RANGE_YEARS} years old")
    return parsed


# --- business helpers ----------------------------------------------------


def _check_ceiling_headroom(
    result: ValidationResult,
    amount: float,
    current_cumulative: float,
    ceiling: float,
    field_name: str,
) -> None:
    impact = compute_impact(amount, current_cumulative, ceiling)
    if impact.exceeds_ceiling:
        result.add_error(
            field_name,
            f"This amount would exceed the bank authorization by {impact.overage:.2f} "
            f"({impact.new_cumulative:.2f} > {ceiling:.2f})",
            ValidationPhase.BUSINESS,
        )
    elif impact.new_utilization_percent >= NEAR_CEILING_PERCENT:
        result.add_warning(
            field_name,
            f"This amount would bring utilization to {impact.new_utilization_percent:.1f}% of the authorization",
        )

    if money.to_minor_units(amount) * LARGE_AMOUNT_RATIO > money.to_minor_units(ceiling):
        result.add_warning(field_name, "This amount represents more than 10% of the bank authorization")


def _check_date_window(result: ValidationResult, day: date, field_name: str, today: date) -> None:
    if day > date_utils.tomorrow(today):
        result.add_error(field_name, "Date cannot be in the future", ValidationPhase.BUSINESS)
    if day < date_utils.one_month_before(today):
        result.add_warning(field_name, "This date is more than one month old")
    if date_utils.is_weekend(day):
        result.add_warning(field_name, "This date falls on a weekend")


# --- public validators ---------------------------------------------------


def validate_amount(value: Any, field_name: str = "montant") -> ValidationResult:
    """Structural amount checks only: finite, positive, 2 decimals, upper bound"""
    result = ValidationResult()
    _check_amount(result, value, field_name)
    return result


def validate_amount_against_ceiling(
    amount: Any,
    current_cumulative: float,
    ceiling: float,
    field_name: str = "montant",
) -> ValidationResult:
    """
    Amount checks followed by the ceiling rules.

    `current_cumulative` must already exclude the record being edited.
    """
    result = validate_amount(amount, field_name)
    if result.valid:
        _check_ceiling_headroom(result, amount, current_cumulative, ceiling, field_name)
    return result


def validate_label(value: Any, field_name: str = "libelle") -> ValidationResult:
    result = ValidationResult()
    _check_label(result, value, field_name)
    return result


def validate_record_date(value: Any, field_name: str, today: Optional[date] = None) -> ValidationResult:
    today = today or date_utils.utc_now().date()
    result = ValidationResult()
    parsed = _check_date(result, value, field_name, today)
    if result.valid and parsed is not None:
        _check_date_window(result, parsed, field_name, today)
    return result


def validate_refinancement_terms(fields: Mapping[str, Any]) -> ValidationResult:
    """Structural checks on rate, duration, outstanding, fee, conditions and status"""
    result = ValidationResult()

    rate = fields.get("interest_rate")
    if not _is_number(rate):
        result.add_error("tauxInteret", "Interest rate must be a valid number")
    else:
        if rate < 0 or rate > 100:
            result.add_error("tauxInteret", "Interest rate must be between 0 and 100%")
        if _decimal_places(rate) > MAX_DECIMALS:
            result.add_error("tauxInteret", f"Interest rate cannot have more than {MAX_DECIMALS} decimal places")

    duration = fields.get("duration_months")
    is_integral = _is_number(duration) and float(duration).is_integer()
    if not is_integral:
        result.add_error("dureeEnMois", "Duration must be a whole number of months")
    elif not 1 <= duration <= MAX_DURATION_MONTHS:
        result.add_error("dureeEnMois", f"Duration must be between 1 and {MAX_DURATION_MONTHS} months")

    _check_non_negative(result, fields.get("outstanding_amount"), "encoursRefinance", "Outstanding amount")

    fee = fields.get("filing_fee")
    if fee is not None:
        _check_non_negative(result, fee, "fraisDossier", "Filing fee")

    conditions = fields.get("conditions")
    if conditions is not None:
        if not isinstance(conditions, str):
            result.add_error("conditions", "Conditions must be text")
        elif len(conditions) > CONDITIONS_MAX_LENGTH:
            result.add_error("conditions", f"Conditions cannot exceed {CONDITIONS_MAX_LENGTH} characters")

    status = fields.get("status")
    if status is not None and status not in {s.value for s in RefinancementStatus} and not isinstance(
        status, RefinancementStatus
    ):
        result.add_error("statut", "Status must be one of ACTIF, TERMINE, SUSPENDU")

    return result


def validate_escompte(
    fields: Mapping[str, Any],
    current_cumulative: float,
    ceiling: float,
    today: Optional[date] = None,
) -> ValidationResult:
    """
    Validate a complete escompte (after merging an update over the stored record).

    `fields` uses domain names: remittance_date, label, amount.
    """
    today = today or date_utils.utc_now().date()
    result = ValidationResult()

    _check_amount(result, fields.get("amount"), "montant")
    _check_label(result, fields.get("label"), "libelle")
    remittance_date = _check_date(result, fields.get("remittance_date"), "dateRemise", today)
    if not result.valid:
        return result

    _check_ceiling_headroom(result, fields["amount"], current_cumulative, ceiling, "montant")
    _check_date_window(result, remittance_date, "dateRemise", today)
    return result


def validate_refinancement(
    fields: Mapping[str, Any],
    current_cumulative: float,
    ceiling: float,
    today: Optional[date] = None,
) -> ValidationResult:
    """Validate a complete refinancement; `fields` uses domain names"""
    today = today or date_utils.utc_now().date()
    result = ValidationResult()

    _check_amount(result, fields.get("amount"), "montantRefinance", "Refinanced amount")
    _check_label(result, fields.get("label"), "libelle")
    refinancing_date = _check_date(result, fields.get("refinancing_date"), "dateRefinancement", today)
    result.merge(validate_refinancement_terms(fields))
    if not result.valid:
        return result

    _check_ceiling_headroom(result, fields["amount"], current_cumulative, ceiling, "montantRefinance")
    _check_date_window(result, refinancing_date, "dateRefinancement", today)

    fee = fields.get("filing_fee") or 0
    if money.to_minor_units(fee) * LARGE_AMOUNT_RATIO > money.to_minor_units(ceiling):
        result.add_warning("fraisDossier", "Filing fee exceeds 10% of the bank authorization")
    return result


def validate_ceiling(new_ceiling: Any, current_cumulative: Optional[float] = None) -> ValidationResult:
    """
    Validate a new bank authorization ceiling.

    When the current cumulative exposure is known, the ceiling cannot be
    set below it.
    """
    field_name = "autorisationBancaire"
    result = ValidationResult()
    _check_amount(result, new_ceiling, field_name, "Authorization")
    if not result.valid:
        return result

    if current_cumulative is not None and money.to_minor_units(new_ceiling) < money.to_minor_units(current_cumulative):
        result.add_error(
            field_name,
            f"Authorization cannot be lower than the current cumulative ({current_cumulative:.2f})",
            ValidationPhase.BUSINESS,
        )
    if new_ceiling < CEILING_LOW_WARNING:
        result.add_warning(field_name, f"An authorization below {CEILING_LOW_WARNING:,} is unusual")
    if new_ceiling > CEILING_HIGH_WARNING:
        result.add_warning(field_name, f"An authorization above {CEILING_HIGH_WARNING:,} is unusual")
    return result

"""Unit tests for escompte/refinancement/ceiling validation rules"""

from datetime import date

import pytest

from escompte_gateway.domain.validation import (
    ValidationPhase,
    validate_amount,
    validate_amount_against_ceiling,
    validate_ceiling,
    validate_escompte,
    validate_label,
    validate_record_date,
    validate_refinancement,
    validate_refinancement_terms,
)

TODAY = date(2025, 3, 12)  # Wednesday


def escompte(**overrides):
    fields = {"remittance_date": "2025-03-11", "label": "Effet EFF003", "amount": 1_000}
    fields.update(overrides)
    return fields


def refinancement(**overrides):
    fields = {
        "refinancing_date": "2025-03-11",
        "label": "Refinancement Q3",
        "amount": 10_000,
        "interest_rate": 10,
        "duration_months": 12,
        "outstanding_amount": 10_000,
        "filing_fee": 0,
        "conditions": "",
        "status": "ACTIF",
    }
    fields.update(overrides)
    return fields


def test_valid_escompte_has_no_errors_or_warnings():
    result = validate_escompte(escompte(), 80_000, 200_000, today=TODAY)

    assert result.valid
    assert result.errors == {}
    assert result.warnings == {}


def test_exactly_at_ceiling_is_accepted_with_warning():
    result = validate_escompte(escompte(amount=120_000), 80_000, 200_000, today=TODAY)

    assert result.valid
    assert any("100.0%" in w for w in result.warnings["montant"])


def test_one_cent_over_ceiling_is_rejected_with_overage():
    result = validate_escompte(escompte(amount=120_000.01), 80_000, 200_000, today=TODAY)

    assert not result.valid
    assert result.failed_phase == ValidationPhase.BUSINESS
    assert "0.01" in result.errors["montant"][0]


def test_ninety_percent_global_utilization_warns_only():
    result = validate_refinancement(refinancement(amount=40_000), 140_000, 200_000, today=TODAY)

    assert result.valid
    assert any("90.0%" in w for w in result.warnings["montantRefinance"])


@pytest.mark.parametrize("label", ["ab", "  ab  ", ""])
def test_short_label_is_structural_error(label):
    result = validate_escompte(escompte(label=label), 0, 200_000, today=TODAY)

    assert "libelle" in result.errors
    assert result.failed_phase == ValidationPhase.STRUCTURAL


def test_forbidden_label_characters():
    result = validate_label("Société<script>")

    assert not result.valid
    assert "forbidden" in result.errors["libelle"][0]


def test_label_too_long():
    assert not validate_label("x" * 256).valid
    assert validate_label("x" * 255).valid


def test_structural_failure_skips_business_rules():
    result = validate_escompte(escompte(label="ab", amount=500_000), 0, 200_000, today=TODAY)

    assert "libelle" in result.errors
    assert "montant" not in result.errors
    assert result.warnings == {}


@pytest.mark.parametrize(
    "amount, message",
    [
        (0, "positive"),
        (-5, "positive"),
        (10.123, "decimal places"),
        (1_000_000_000, "exceed"),
        (float("nan"), "valid number"),
        ("abc", "valid number"),
        (None, "valid number"),
        (True, "valid number"),
    ],
)
def test_amount_structural_errors(amount, message):
    result = validate_amount(amount)

    assert not result.valid
    assert any(message in e for e in result.errors["montant"])


def test_amount_max_is_inclusive():
    assert validate_amount(999_999_999.99).valid


def test_large_amount_warning():
    result = validate_amount_against_ceiling(25_000, 0, 200_000)

    assert result.valid
    assert any("10%" in w for w in result.warnings["montant"])


def test_future_date_is_business_error():
    result = validate_record_date("2025-03-14", "dateRemise", today=TODAY)

    assert result.errors["dateRemise"] == ["Date cannot be in the future"]
    assert result.failed_phase == ValidationPhase.BUSINESS


def test_tomorrow_is_tolerated():
    assert validate_record_date("2025-03-13", "dateRemise", today=TODAY).valid


def test_stale_date_warns():
    assert validate_record_date("2025-02-12", "dateRemise", today=TODAY).warnings == {}

    result = validate_record_date("2025-02-11", "dateRemise", today=TODAY)
    assert result.valid
    assert "more than one month old" in result.warnings["dateRemise"][0]


def test_weekend_date_warns():
    result = validate_record_date("2025-03-08", "dateRemise", today=TODAY)

    assert result.valid
    assert "weekend" in result.warnings["dateRemise"][0]


@pytest.mark.parametrize("value", ["2025-02-30", "11/03/2025", "", None, "2025-03-11garbage"])
def test_unparseable_date(value):
    result = validate_record_date(value, "dateRemise", today=TODAY)
    assert result.errors["dateRemise"] == ["Date is not a valid calendar date"]


def test_iso_datetime_is_accepted():
    assert validate_record_date("2025-03-11T10:00:00.000Z", "dateRemise", today=TODAY).valid


def test_date_outside_five_years_is_structural():
    result = validate_record_date("2019-01-01", "dateRemise", today=TODAY)

    assert not result.valid
    assert result.failed_phase == ValidationPhase.STRUCTURAL


def test_valid_refinancement():
    assert validate_refinancement(refinancement(), 0, 200_000, today=TODAY).valid


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"interest_rate": 101}, "tauxInteret"),
        ({"interest_rate": -1}, "tauxInteret"),
        ({"interest_rate": 10.555}, "tauxInteret"),
        ({"duration_months": 0}, "dureeEnMois"),
        ({"duration_months": 361}, "dureeEnMois"),
        ({"duration_months": 12.5}, "dureeEnMois"),
        ({"outstanding_amount": -1}, "encoursRefinance"),
        ({"filing_fee": -0.01}, "fraisDossier"),
        ({"conditions": "x" * 501}, "conditions"),
        ({"status": "CLOSED"}, "statut"),
    ],
)
def test_refinancement_term_errors(overrides, field):
    result = validate_refinancement_terms(refinancement(**overrides))
    assert field in result.errors


def test_whole_float_duration_is_accepted():
    assert validate_refinancement_terms(refinancement(duration_months=12.0)).valid


def test_oversized_filing_fee_warns():
    result = validate_refinancement(refinancement(filing_fee=20_000.01), 0, 200_000, today=TODAY)

    assert result.valid
    assert "fraisDossier" in result.warnings


def test_ceiling_below_exposure_is_rejected():
    result = validate_ceiling(50_000, 80_000)

    assert not result.valid
    assert result.failed_phase == ValidationPhase.BUSINESS
    assert "80000.00" in result.errors["autorisationBancaire"][0]


def test_ceiling_equal_to_exposure_is_accepted():
    assert validate_ceiling(80_000, 80_000).valid


@pytest.mark.parametrize("ceiling", [500, 20_000_000])
def test_unusual_ceiling_warns(ceiling):
    result = validate_ceiling(ceiling, 0)

    assert result.valid
    assert "autorisationBancaire" in result.warnings


def test_ceiling_must_be_positive():
    result = validate_ceiling(0)
    assert result.failed_phase == ValidationPhase.STRUCTURAL


def test_result_to_dict():
    payload = validate_label("ab").to_dict()
    assert payload["valid"] is False
    assert set(payload) == {"valid", "errors", "warnings"}

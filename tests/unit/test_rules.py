"""Unit tests for score rule validation and classification"""

import pytest
from pydantic import ValidationError
from meinha_ledger.domain.exceptions import InvalidScoreRulesError
from meinha_ledger.domain.rules import DEFAULT_RULES, parse_rules


def test_default_rules_survive_the_settings_document_shape():
    document = DEFAULT_RULES.to_document()

    assert document["initialScore"] == 500
    assert document["penalties"]["late1to2"] == -10
    assert document["debtorBonus"]["onTime"] == 7
    assert parse_rules(document) == DEFAULT_RULES


def test_snake_case_keys_are_accepted(rules_document):
    rules_document["initial_score"] = rules_document.pop("initialScore")

    assert parse_rules(rules_document).initial_score == 500


def test_missing_required_field_fails_loudly(rules_document):
    del rules_document["debtorBonus"]["onTime"]

    with pytest.raises(InvalidScoreRulesError) as exc_info:
        parse_rules(rules_document)

    assert "debtorBonus.onTime" in str(exc_info.value)


def test_positive_penalty_is_rejected(rules_document):
    rules_document["penalties"]["late3to7"] = 25

    with pytest.raises(InvalidScoreRulesError):
        parse_rules(rules_document)


def test_unknown_key_is_rejected(rules_document):
    rules_document["bonusForFriends"] = 50

    with pytest.raises(InvalidScoreRulesError):
        parse_rules(rules_document)


def test_non_mapping_is_rejected():
    with pytest.raises(InvalidScoreRulesError):
        parse_rules(["initialScore", 500])


def test_min_above_max_is_rejected(rules_document):
    rules_document["minScore"] = 800
    rules_document["maxScore"] = 700

    with pytest.raises(InvalidScoreRulesError):
        parse_rules(rules_document)


@pytest.mark.parametrize(
    "tiers",
    [
        [],
        [{"name": "Ok", "minScore": 100}, {"name": "Elite", "minScore": 900}, {"name": "Perigo"}],
        [{"name": "Ok", "minScore": 100}, {"name": "Perigo", "minScore": 0}],
        [{"name": "Ok"}, {"name": "Perigo"}],
    ],
)
def test_inconsistent_tiers_are_rejected(rules_document, tiers):
    rules_document["tiers"] = tiers

    with pytest.raises(InvalidScoreRulesError):
        parse_rules(rules_document)


@pytest.mark.parametrize(
    "score, tier",
    [
        (1000, "Elite"),
        (900, "Elite"),
        (899.99, "Confiável"),
        (700, "Confiável"),
        (500, "Ok"),
        (399, "Instável"),
        (150, "Perigo"),
        (99, "Caloteiro"),
        (-50, "Caloteiro"),
    ],
)
def test_default_classification(score, tier):
    assert DEFAULT_RULES.classify(score) == tier


@pytest.mark.parametrize(
    "days, band",
    [(1, "late1to2"), (2, "late1to2"), (3, "late3to7"), (8, "late8to30"), (30, "late8to30"), (31, "late30plus")],
)
def test_late_penalty_band(days, band):
    assert DEFAULT_RULES.penalties.late_penalty(days)[0] == band


def test_value_weight_thresholds():
    assert DEFAULT_RULES.value_weight(999) == 0.2
    assert DEFAULT_RULES.value_weight(1000) == 0.6
    assert DEFAULT_RULES.value_weight(4999) == 0.6
    assert DEFAULT_RULES.value_weight(5000) == 1.0


def test_rules_are_immutable():
    with pytest.raises(ValidationError):
        DEFAULT_RULES.initial_score = 0


def test_default_grace_window_is_the_due_date_only():
    assert DEFAULT_RULES.payment_bonus.late_tolerance == 0
    assert DEFAULT_RULES.debtor_bonus.late_tolerance == 0

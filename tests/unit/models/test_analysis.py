"""Unit tests for the analysis domain models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from sentiment_service.models.analysis import AnalysisResult, Classification
from sentiment_service.models.enums import CircuitState, SentimentLabel


def test_from_classification(make_result):
    fingerprint = make_result().fingerprint
    classification = Classification(label=SentimentLabel.MIXED, confidence=0.5, model_id="m")

    result = AnalysisResult.from_classification(fingerprint, classification)

    assert result.fingerprint == fingerprint
    assert result.label == SentimentLabel.MIXED
    assert result.created_at.tzinfo is not None


@pytest.mark.parametrize("confidence", [-0.01, 1.01])
def test_confidence_bounds(confidence):
    with pytest.raises(ValidationError):
        Classification(label=SentimentLabel.POSITIVE, confidence=confidence, model_id="m")


def test_label_must_be_in_taxonomy():
    with pytest.raises(ValidationError):
        Classification(label="HAPPY", confidence=0.5, model_id="m")


def test_fingerprint_length_enforced():
    with pytest.raises(ValidationError):
        AnalysisResult(fingerprint="abc", label="POSITIVE", confidence=0.5, model_id="m")


def test_naive_created_at_is_treated_as_utc(make_result):
    naive = datetime(2026, 1, 1, 12, 0, 0)

    result = make_result().model_copy(update={"created_at": naive})
    revalidated = AnalysisResult.model_validate(result.model_dump())

    assert revalidated.created_at == datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_is_fresh(make_result):
    now = datetime.now(timezone.utc)
    result = make_result(age_seconds=100)

    assert result.is_fresh(3600, now=now) is True
    assert result.is_fresh(50, now=now) is False
    assert result.is_fresh(0, now=now) is False
    assert result.is_fresh(3600, now=now + timedelta(hours=2)) is False


def test_circuit_state_ordinals():
    assert [CircuitState.get_ordinal(s) for s in CircuitState] == [0, 2, 1]

from __future__ import annotations

import pytest

from realign.errors import UnknownCheckError
from realign.models import CheckedPart, CheckResult, Match, MatchWithReplacement, Span, match_from_dict
from realign.session import CheckSessionStore


def test_latest_record_wins():
    store = CheckSessionStore()
    store.record("c1", "first")
    session = store.record("c1", "second", CheckedPart("c1", Span(0, 6)))
    assert store.lookup("c1") == "second"
    assert store.get("c1") is session
    assert len(store) == 1
    assert "c1" in store


def test_unknown_and_forgotten_ids():
    store = CheckSessionStore()
    with pytest.raises(UnknownCheckError):
        store.lookup("missing")
    store.record("c1", "text")
    store.forget("c1")
    store.forget("c1")
    assert "c1" not in store
    with pytest.raises(LookupError):
        store.get("c1")


def test_span_validation_and_helpers():
    with pytest.raises(ValueError):
        Span(3, 2)
    with pytest.raises(ValueError):
        Span(-1, 2)
    span = Span(2, 5)
    assert span.length == 3
    assert span.shift(-2) == Span(0, 3)
    assert span.contains(Span(2, 2))
    assert not span.overlaps(Span(5, 7))
    assert span.overlaps(Span(4, 4))
    assert Span.from_value([1, 4]) == Span(1, 4)


def test_match_json_shapes():
    plain = match_from_dict({"content": "a", "range": [0, 1]})
    assert type(plain) is Match
    with_replacement = match_from_dict({"content": "a", "range": [0, 1], "replacement": "b"})
    assert isinstance(with_replacement, MatchWithReplacement)
    assert with_replacement.to_dict() == {"content": "a", "range": [0, 1], "replacement": "b"}
    moved = with_replacement.relocated(Span(3, 4))
    assert moved.replacement == "b"
    assert moved.range == Span(3, 4)


def test_check_result_from_dict_accepts_camel_case():
    result = CheckResult.from_dict({"checkedPart": {"checkId": "c9", "range": [0, 12]}})
    assert result.checked_part == CheckedPart("c9", Span(0, 12))
    with pytest.raises(ValueError):
        CheckResult.from_dict({"checked_part": {"range": [0, 1]}})

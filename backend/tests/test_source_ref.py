"""Tests for source reference parsing."""

import pytest

from practice_exam.models.exam import SourceKind
from practice_exam.services.source_ref import SourceRef


@pytest.mark.parametrize(
    "raw,kind,ref_id",
    [
        ("quiz:abc", SourceKind.QUIZ, "abc"),
        ("topic:42", SourceKind.TOPIC, "42"),
        ("Subject: physics ", SourceKind.SUBJECT, "physics"),
        ("platform:p1", SourceKind.PLATFORM, "p1"),
        ("roadmap:r-9", SourceKind.ROADMAP, "r-9"),
        ("abc123", SourceKind.QUIZ, "abc123"),
        ("unknown:xyz", SourceKind.QUIZ, "unknown:xyz"),
    ],
)
def test_parse(raw, kind, ref_id):
    ref = SourceRef.parse(raw)
    assert ref.kind is kind
    assert ref.id == ref_id


@pytest.mark.parametrize("raw", ["", "   ", "topic:", "quiz:  "])
def test_parse_rejects_missing_id(raw):
    with pytest.raises(ValueError):
        SourceRef.parse(raw)


def test_query_params_and_str():
    ref = SourceRef(SourceKind.TOPIC, "42")
    assert ref.query_params() == {"topicId": "42"}
    assert str(ref) == "topic:42"

"""Structured reference to a question-source collection."""

from dataclasses import dataclass

from practice_exam.models.exam import ExamPaper, SourceKind

# Query parameter the question source expects for each kind
_QUERY_PARAM = {
    SourceKind.QUIZ: "quizId",
    SourceKind.TOPIC: "topicId",
    SourceKind.SUBJECT: "subjectId",
    SourceKind.PLATFORM: "platformId",
    SourceKind.ROADMAP: "roadmapId",
}


@dataclass(frozen=True)
class SourceRef:
    kind: SourceKind
    id: str

    @classmethod
    def parse(cls, raw: str) -> "SourceRef":
        """
        Parse the ``kind:id`` form entered by users.

        A bare id, or an unknown prefix, is a quiz id (the whole string is
        kept in the unknown-prefix case).
        """
        raw = raw.strip()
        if not raw:
            raise ValueError("Quiz source is required.")
        prefix, sep, value = raw.partition(":")
        if not sep:
            return cls(SourceKind.QUIZ, raw)
        try:
            kind = SourceKind(prefix.strip().lower())
        except ValueError:
            return cls(SourceKind.QUIZ, raw)
        value = value.strip()
        if not value:
            raise ValueError(f"Missing id after '{prefix}:'.")
        return cls(kind, value)

    @classmethod
    def from_paper(cls, paper: ExamPaper) -> "SourceRef":
        return cls(SourceKind(paper.source_kind), paper.source_id)

    def query_params(self) -> dict[str, str]:
        return {_QUERY_PARAM[self.kind]: self.id}

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"

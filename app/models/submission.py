from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional

# Written in place of an empty array so the document store never holds a blank bin
PLACEHOLDER_RECORD = {"init": True}

TEXT_ANSWER_TYPE = "control_textbox"
FILE_ANSWER_TYPE = "control_fileupload"
ACTIVE_STATUS = "ACTIVE"


def is_placeholder(item: Any) -> bool:
    return isinstance(item, dict) and bool(item.get("init"))


class SubmissionRecord(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow", coerce_numbers_to_str=True
    )

    submission_id: Optional[str] = None
    name: Optional[str] = None
    image_url: Optional[str] = None
    timestamp: Optional[str] = None
    likes: int = 0

    # Original document of a record that does not fit the model; written back as-is
    _raw: Optional[dict] = PrivateAttr(default=None)

    @field_validator("likes", mode="before")
    @classmethod
    def default_likes(cls, value):
        return 0 if value is None else value

    @classmethod
    def from_document(cls, item: dict) -> "SubmissionRecord":
        """Parse a stored record, keeping ones the model rejects instead of failing the read."""
        try:
            return cls.model_validate(item)
        except ValidationError:
            known = {
                field: item.get(key)
                for field, key in (("submission_id", "submissionId"), ("name", "name"), ("image_url", "imageUrl"))
                if isinstance(item.get(key), str)
            }
            record = cls.model_construct(**known)
            record._raw = dict(item)
            return record

    @property
    def is_visible(self) -> bool:
        return bool(self.image_url)

    def to_document(self) -> dict:
        if self._raw is not None:
            document = dict(self._raw)
            if "likes" in self.model_fields_set:
                document["likes"] = self.likes
            return document
        return self.model_dump(by_alias=True, exclude_unset=True)


class UpstreamAnswer(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    type: Optional[str] = None
    name: Optional[str] = None
    text: Optional[str] = None
    answer: Any = None


class UpstreamSubmission(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    status: Optional[str] = None
    created_at: Optional[str] = None
    answers: Dict[str, UpstreamAnswer] = Field(default_factory=dict)

    @field_validator("answers", mode="before")
    @classmethod
    def empty_answers(cls, value):
        # Jotform sends [] instead of {} for submissions without answers
        return value or {}

    @property
    def is_active(self) -> bool:
        return (self.status or "").upper() == ACTIVE_STATUS

    def _ordered_answers(self) -> List[UpstreamAnswer]:
        # Jotform keys answers by question number; keep form order
        def sort_key(key: str):
            return (0, int(key)) if key.isdigit() else (1, key)
        return [self.answers[key] for key in sorted(self.answers, key=sort_key)]

    def _configured_answer(self, field: Optional[str]) -> Optional[UpstreamAnswer]:
        if not field:
            return None
        for answer in self._ordered_answers():
            if answer.name == field and answer.answer:
                return answer
        return None

    def display_name(self, field: Optional[str] = None) -> Optional[str]:
        answer = self._configured_answer(field)
        if answer is None:
            answer = next(
                (a for a in self._ordered_answers() if a.type == TEXT_ANSWER_TYPE and a.answer),
                None
            )
        if answer is None:
            return None
        return str(answer.answer).strip() or None

    def file_url(self, field: Optional[str] = None) -> Optional[str]:
        answer = self._configured_answer(field)
        if answer is None:
            answer = next(
                (a for a in self._ordered_answers() if a.type == FILE_ANSWER_TYPE and a.answer),
                None
            )
        if answer is None:
            return None
        value = answer.answer
        if isinstance(value, list):
            value = value[0] if value else None
        return str(value) if value else None


class ReconciliationSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    processed: int = 0
    skipped: int = 0
    failed: int = 0
    removed: int = 0
    errors: List[str] = Field(default_factory=list)
    total_missing: int = 0
    has_more: bool = False
    next_offset: Optional[int] = None
    total: int = 0

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

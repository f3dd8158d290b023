from typing import Any
from pydantic import BaseModel, ConfigDict, Field


class CreateRequestInput(BaseModel):
    receiver_id: str
    message: str | None = None


class UpdateRequestInput(BaseModel):
    status: str | None = None
    connection_stage: str | None = None
    rejection_reason: str | None = None


class RejectConnectionInput(BaseModel):
    reason: str | None = None


class QuestionInput(BaseModel):
    question: Any = None


class SendQuestionnaireInput(BaseModel):
    questions: list[QuestionInput] = Field(default_factory=list)


class AnswerQuestionnaireInput(BaseModel):
    questionnaire_id: str
    answers: list[Any] = Field(default_factory=list)


class CompatibilityAnswersInput(BaseModel):
    model_config = ConfigDict(extra="allow")

    religious_background: str | None = None

    def answer_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class SendMessageInput(BaseModel):
    receiver_id: str
    body: Any = None

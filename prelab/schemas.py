# prelab/schemas.py
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional


class ChatMessage(BaseModel):
    role: str
    content: str


class Question(BaseModel):
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=2, max_length=4)
    correct_index: int = Field(0, ge=0)
    explanation: str = ""
    topic: str = "General"


class QuizResult(BaseModel):
    questions: List[Question]
    requested_count: int
    generated_count: int
    partial: bool

    @model_validator(mode="after")
    def _counts_match(self):
        if self.generated_count != len(self.questions):
            raise ValueError("generated_count must equal the number of questions")
        if self.partial != (self.generated_count < self.requested_count):
            raise ValueError("partial must be set exactly when fewer questions than requested were generated")
        return self


class QuizRequest(BaseModel):
    subject_name: str = "General"
    module_title: str
    material_text: str = ""
    question_count: Optional[int] = 10


class QuestionReview(BaseModel):
    question: str
    topic: str
    selected_index: Optional[int] = None
    selected_answer: Optional[str] = None
    correct_index: int
    correct_answer: Optional[str] = None
    is_correct: bool
    explanation: str = ""


class QuizEvaluation(BaseModel):
    review: List[QuestionReview]
    correct_count: int
    total: int
    score: float
    weak_areas: List[str]


class Explanation(BaseModel):
    summary: str = ""
    key_points: List[str] = []
    study_tips: List[str] = []


class Feedback(BaseModel):
    encouragement: str
    weak_area_suggestions: List[str] = []
    next_steps: List[str] = []


# --- Request bodies ---

class EvaluationRequest(BaseModel):
    module_title: str = "General"
    questions: List[Question]
    answers: List[Optional[int]]


class ExplanationRequest(BaseModel):
    subject_name: str = "General"
    module_title: str
    material_text: str = ""
    topic: Optional[str] = None


class ChatRequest(BaseModel):
    subject_name: str = "General"
    module_title: str
    material_text: str = ""
    history: List[ChatMessage] = []
    message: str = Field(..., min_length=1)

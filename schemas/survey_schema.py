from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class SurveyCreate(BaseModel):
    title: str
    questions: List[Any]
    created_by: Optional[int] = None


class SurveyOut(SurveyCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime


class SurveyAnswers(BaseModel):
    answers: Dict[str, Any]


class SurveyResponseCreate(SurveyAnswers):
    survey_id: int
    user_id: Optional[int] = None


class SurveyResponseOut(SurveyResponseCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    submitted_at: datetime

from typing import List

from fastapi import APIRouter, Depends, status

from dependencies.auth import get_current_user, get_storage, require_admin
from schemas.survey_schema import SurveyAnswers, SurveyCreate, SurveyOut, SurveyResponseCreate, SurveyResponseOut
from schemas.user_schema import UserInDB
from storage.errors import NotFoundError
from storage.interface import Storage

router = APIRouter()


async def _get_survey_or_404(survey_id: int, storage: Storage) -> SurveyOut:
    survey = await storage.get_survey(survey_id)
    if survey is None:
        raise NotFoundError("Survey", survey_id)
    return survey


@router.post("", response_model=SurveyOut, status_code=status.HTTP_201_CREATED)
async def create_survey(data: SurveyCreate, user: UserInDB = Depends(require_admin),
                        storage: Storage = Depends(get_storage)):
    return await storage.create_survey(data.model_copy(update={"created_by": user.id}))


@router.get("", response_model=List[SurveyOut])
async def list_surveys(_: UserInDB = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    return await storage.get_surveys()


@router.get("/{survey_id}", response_model=SurveyOut)
async def get_survey(survey_id: int, _: UserInDB = Depends(get_current_user),
                     storage: Storage = Depends(get_storage)):
    return await _get_survey_or_404(survey_id, storage)


@router.post("/{survey_id}/responses", response_model=SurveyResponseOut, status_code=status.HTTP_201_CREATED)
async def respond(survey_id: int, data: SurveyAnswers, user: UserInDB = Depends(get_current_user),
                  storage: Storage = Depends(get_storage)):
    await _get_survey_or_404(survey_id, storage)
    return await storage.create_survey_response(
        SurveyResponseCreate(survey_id=survey_id, user_id=user.id, answers=data.answers)
    )


@router.get("/{survey_id}/responses", response_model=List[SurveyResponseOut])
async def list_responses(survey_id: int, _: UserInDB = Depends(require_admin),
                         storage: Storage = Depends(get_storage)):
    await _get_survey_or_404(survey_id, storage)
    return await storage.get_survey_responses(survey_id)

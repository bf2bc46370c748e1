from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from maskpaint import crud
from maskpaint.db import get_db
from maskpaint.schemas import PreferenceResponse, PreferenceUpdateRequest


router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("/developer-message", response_model=PreferenceResponse)
def get_developer_message(db: Session = Depends(get_db)) -> PreferenceResponse:
    preference = crud.get_preference(db, crud.DEVELOPER_MESSAGE_KEY)
    if preference is None:
        return PreferenceResponse(key=crud.DEVELOPER_MESSAGE_KEY, value="")
    return PreferenceResponse.model_validate(preference)


@router.put("/developer-message", response_model=PreferenceResponse)
def save_developer_message(
    payload: PreferenceUpdateRequest,
    db: Session = Depends(get_db),
) -> PreferenceResponse:
    preference = crud.set_preference(db, crud.DEVELOPER_MESSAGE_KEY, payload.value)
    return PreferenceResponse.model_validate(preference)

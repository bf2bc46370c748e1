from sqlalchemy.orm import Session

from maskpaint.models import Preference


DEVELOPER_MESSAGE_KEY = "gpt-developer-message-default"


def get_preference(db: Session, key: str) -> Preference | None:
    return db.get(Preference, key)


def get_preference_value(db: Session, key: str) -> str | None:
    preference = get_preference(db, key)
    return preference.value if preference is not None else None


def set_preference(db: Session, key: str, value: str) -> Preference:
    preference = get_preference(db, key)
    if preference is None:
        preference = Preference(key=key, value=value)
        db.add(preference)
    else:
        preference.value = value
    db.commit()
    db.refresh(preference)
    return preference

from sqlalchemy.orm import Session

from . import user as model
from .user import utcnow


def get_user_by_email(db: Session, email: str):
    return db.query(model.User).filter(model.User.email == email.lower()).first()


def get_user_by_id(db: Session, user_id):
    return db.query(model.User).filter(model.User.id == user_id).first()


def create_user(db: Session, email: str, hashed_password: str):
    db_user = model.User(email=email.lower(), hashed_password=hashed_password)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def record_sign_in(db: Session, db_user: model.User):
    db_user.last_sign_in_at = utcnow()
    db.commit()
    db.refresh(db_user)
    return db_user


def delete_user(db: Session, db_user: model.User) -> None:
    db.delete(db_user)
    db.commit()

"""
Storage layer: owner-scoped persistence for users and notes.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.api.database import get_db
from src.api.errors import DuplicateResourceError, StoreError
from src.api.models import Note, User, utcnow

logger = logging.getLogger(__name__)

USER_FIELDS = ("email", "password_hash", "first_name", "last_name", "profile_image_url")
NOTE_FIELDS = ("title", "description", "priority")


def _like_pattern(query: str) -> str:
    """Wrap a literal search term for LIKE, escaping its wildcards."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class NoteStorage(ABC):
    """Interface for user and note persistence."""

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    def upsert_user(self, data: Dict[str, Any]) -> User:
        ...

    @abstractmethod
    def get_user_notes(self, user_id: str) -> List[Note]:
        ...

    @abstractmethod
    def create_note(self, user_id: str, data: Dict[str, Any]) -> Note:
        ...

    @abstractmethod
    def update_note(self, note_id: str, user_id: str, data: Dict[str, Any]) -> Optional[Note]:
        ...

    @abstractmethod
    def delete_note(self, note_id: str, user_id: str) -> bool:
        ...

    @abstractmethod
    def search_user_notes(self, user_id: str, query: str) -> List[Note]:
        ...

    @abstractmethod
    def filter_user_notes_by_priority(self, user_id: str, priority: int) -> List[Note]:
        ...


class DatabaseStorage(NoteStorage):
    """NoteStorage backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _store_errors(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error %s: %s", action, exc)
            raise StoreError(f"Failed {action}") from exc

    def _user_notes(self, user_id: str):
        return self.db.query(Note).filter(Note.user_id == user_id)

    # -------- Users --------

    def get_user(self, user_id: str) -> Optional[User]:
        with self._store_errors("getting user"):
            return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._store_errors("getting user by email"):
            return self.db.query(User).filter(User.email == email.lower()).first()

    def upsert_user(self, data: Dict[str, Any]) -> User:
        """
        Insert a user, or merge non-None fields into an existing one.

        Keyed by data["id"]; without an id a new user is always created.
        Raises DuplicateResourceError when the email is already taken, and
        StoreError for any other constraint failure.
        """
        fields = {k: data[k] for k in USER_FIELDS if data.get(k) is not None}
        if "email" in fields:
            fields["email"] = fields["email"].lower()
        user_id = data.get("id")
        with self._store_errors("upserting user"):
            user = self.db.get(User, user_id) if user_id else None
            if user is None:
                if user_id:
                    fields["id"] = user_id
                user = User(**fields)
                self.db.add(user)
            else:
                for key, value in fields.items():
                    setattr(user, key, value)
                user.updated_at = utcnow()
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                if "email" in fields and self.get_user_by_email(fields["email"]) is not None:
                    raise DuplicateResourceError() from exc
                logger.error("Error upserting user: %s", exc)
                raise StoreError("Failed upserting user") from exc
            self.db.refresh(user)
            return user

    # -------- Notes --------

    def get_user_notes(self, user_id: str) -> List[Note]:
        with self._store_errors("getting user notes"):
            return self._user_notes(user_id).order_by(Note.created_at.desc()).all()

    def create_note(self, user_id: str, data: Dict[str, Any]) -> Note:
        with self._store_errors("creating note"):
            note = Note(user_id=user_id, **{k: data[k] for k in NOTE_FIELDS})
            self.db.add(note)
            self.db.commit()
            self.db.refresh(note)
            return note

    def update_note(self, note_id: str, user_id: str, data: Dict[str, Any]) -> Optional[Note]:
        with self._store_errors("updating note"):
            note = self._user_notes(user_id).filter(Note.id == note_id).first()
            if note is None:
                return None
            for key in NOTE_FIELDS:
                if data.get(key) is not None:
                    setattr(note, key, data[key])
            note.updated_at = utcnow()
            self.db.commit()
            self.db.refresh(note)
            return note

    def delete_note(self, note_id: str, user_id: str) -> bool:
        with self._store_errors("deleting note"):
            deleted = self._user_notes(user_id).filter(Note.id == note_id).delete(synchronize_session=False)
            self.db.commit()
            return deleted > 0

    def search_user_notes(self, user_id: str, query: str) -> List[Note]:
        pattern = _like_pattern(query)
        with self._store_errors("searching notes"):
            return (
                self._user_notes(user_id)
                .filter(
                    or_(
                        Note.title.ilike(pattern, escape="\\"),
                        Note.description.ilike(pattern, escape="\\"),
                    )
                )
                .order_by(Note.created_at.desc())
                .all()
            )

    def filter_user_notes_by_priority(self, user_id: str, priority: int) -> List[Note]:
        with self._store_errors("filtering notes by priority"):
            return (
                self._user_notes(user_id)
                .filter(Note.priority == priority)
                .order_by(Note.created_at.desc())
                .all()
            )


def get_storage(db: Session = Depends(get_db)) -> NoteStorage:
    """Dependency that wraps the request's session in a DatabaseStorage."""
    return DatabaseStorage(db)

import pytest
from sqlalchemy.orm import Session

from app.crud import achievement as crud_achievement
from app.crud.subject import create_subject
from app.core.exceptions import AchievementNotFound, AchievementValidationError


@pytest.fixture
def subject(db: Session):
    return create_subject(db, {"title": "Quantum sensing", "status": "launched"})


def test_create_achievement_success(db: Session, subject):
    achievement = crud_achievement.create_achievement(db, {
        "title": " Patent filed ",
        "subject_id": subject.id,
        "type": "patent",
        "pdf_path": "abc.pdf",
    })
    assert achievement.id is not None
    assert achievement.title == "Patent filed"
    assert achievement.type == "patent"
    assert achievement.doc_path is None
    assert achievement.pdf_path == "abc.pdf"

def test_create_achievement_requires_existing_subject(db: Session):
    with pytest.raises(AchievementValidationError, match="Related subject does not exist."):
        crud_achievement.create_achievement(db, {"title": "Lost", "subject_id": 9999})

def test_create_achievement_requires_title(db: Session, subject):
    with pytest.raises(AchievementValidationError, match="title is required"):
        crud_achievement.create_achievement(db, {"title": "", "subject_id": subject.id})

def test_get_achievements_by_subject(db: Session, subject):
    other = create_subject(db, {"title": "Other"})
    crud_achievement.create_achievement(db, {"title": "A", "subject_id": subject.id})
    crud_achievement.create_achievement(db, {"title": "B", "subject_id": subject.id})
    crud_achievement.create_achievement(db, {"title": "C", "subject_id": other.id})

    assert [a.title for a in crud_achievement.get_achievements(db, subject_id=subject.id)] == ["B", "A"]
    assert len(crud_achievement.get_achievements(db)) == 3

def test_update_achievement(db: Session, subject):
    achievement = crud_achievement.create_achievement(db, {"title": "Draft", "subject_id": subject.id})
    updated = crud_achievement.update_achievement(db, achievement.id, {"title": "Final", "doc_path": "final.docx"})
    assert updated.title == "Final"
    assert updated.doc_path == "final.docx"
    assert updated.subject_id == subject.id

def test_update_achievement_not_found(db: Session):
    with pytest.raises(AchievementNotFound):
        crud_achievement.update_achievement(db, 9999, {"title": "Nope"})

def test_delete_achievement(db: Session, subject):
    achievement = crud_achievement.create_achievement(db, {"title": "Gone", "subject_id": subject.id})
    crud_achievement.delete_achievement(db, achievement.id)
    with pytest.raises(AchievementNotFound):
        crud_achievement.get_achievement(db, achievement.id)

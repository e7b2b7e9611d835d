#app/schemas/achievement.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class AchievementBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200, example="Paper accepted at NeurIPS", description="Title")
    type: Optional[str] = Field(None, max_length=64, example="paper", description="paper, patent, software, ...")
    doc_path: Optional[str] = Field(None, example="a1b2c3.docx", description="Source document object key")
    pdf_path: Optional[str] = Field(None, example="a1b2c3.pdf", description="PDF object key")

class AchievementCreate(AchievementBase):
    subject_id: int = Field(..., example=1, description="Subject ID")

class AchievementUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[str] = Field(None, max_length=64)
    doc_path: Optional[str] = None
    pdf_path: Optional[str] = None

class AchievementRead(AchievementBase):
    id: int
    subject_id: int
    created_at: datetime

    class Config:
        from_attributes = True

#app/schemas/subject.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal
from datetime import date, datetime

SubjectStatus = Literal["preparing", "launched", "finished"]
SortField = Literal["created_at", "deadline_date", "title"]
SortOrder = Literal["asc", "desc"]

class SubjectBase(BaseModel):
    """
    SubjectBase: shared fields of a research subject.
    """
    title: str = Field(..., min_length=1, max_length=200, example="AI algorithm research", description="Subject title")
    status: SubjectStatus = Field("preparing", example="launched", description="preparing, launched or finished")
    owner_id: Optional[int] = Field(None, example=1, description="Owner user ID")
    kickoff_date: Optional[date] = Field(None, example="2024-02-01", description="Kickoff date")
    deadline_date: Optional[date] = Field(None, example="2024-08-01", description="Deadline date")

class SubjectCreate(SubjectBase):
    pass

class SubjectUpdate(BaseModel):
    """
    SubjectUpdate: partial update, every field optional.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    status: Optional[SubjectStatus] = None
    owner_id: Optional[int] = None
    kickoff_date: Optional[date] = None
    deadline_date: Optional[date] = None

class SubjectRead(SubjectBase):
    """
    SubjectRead: full subject with derived, read-only fields.
    """
    id: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    achievement_count: int = 0
    owner_name: Optional[str] = None
    progress: int = 0
    is_overdue: bool = False
    is_due_soon: bool = False

    class Config:
        from_attributes = True

class SubjectStats(BaseModel):
    """
    SubjectStats: aggregate counts, recomputed on every request.
    """
    total: int = 0
    preparing: int = 0
    launched: int = 0
    finished: int = 0
    due_soon: int = 0

class SubjectFilters(BaseModel):
    """
    SubjectFilters: search/status filter plus sort key and direction.
    The defaults list everything newest first.
    """
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    search: str = ""
    status: Literal["all", "preparing", "launched", "finished"] = "all"
    sort_by: SortField = "created_at"
    sort_order: SortOrder = "desc"

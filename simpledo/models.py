# simpledo/models.py

import uuid
from datetime import date, time
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- To-do records ---

class Priority(str, Enum):
    NONE = "none"
    HIGH = "high"
    LOW = "low"


class TaskView(str, Enum):
    ALL_TASKS = "all-tasks"
    IMPORTANT = "important"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"


def _require_title(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("Task title must not be empty")
    return value


class Task(BaseModel):
    # Snapshots handed out by the store must not be mutated in place
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    priority: Priority = Priority.NONE
    due_date: date
    due_time: time
    completed: bool = False

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        return _require_title(v)


class TaskCreate(BaseModel):
    title: str
    priority: Priority = Priority.NONE
    due_date: date
    due_time: time

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        return _require_title(v)


class TaskUpdate(TaskCreate):
    completed: bool = False


class CompletedUpdate(BaseModel):
    completed: bool


class TaskOut(BaseModel):
    id: str
    title: str
    priority: Priority
    due_date: date
    due_time: time
    completed: bool
    due_display: str


# --- Image search pipeline ---

class RunStatus(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    SEARCHING = "searching"
    DONE = "done"
    FAILED = "failed"


class Source(BaseModel):
    uri: str
    title: str


class SearchAnswer(BaseModel):
    text: str
    sources: List[Source] = []


class SourceImage(BaseModel):
    data: bytes
    mime_type: str


class PipelineRun(BaseModel):
    run_id: Optional[str] = None
    source_image: Optional[SourceImage] = Field(default=None, exclude=True)
    preview_id: Optional[str] = None
    extracted_text: str = ""
    search_result: str = ""
    search_result_html: str = ""
    sources: List[Source] = []
    status: RunStatus = RunStatus.IDLE
    error_message: Optional[str] = None


class SearchRequest(BaseModel):
    query: str


class SearchResponse(BaseModel):
    text: str
    html: str
    sources: List[Source] = []


class CopyResponse(BaseModel):
    text: str
    message: str

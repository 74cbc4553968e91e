from pydantic import Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

from podadmin.common import ApiModel, PyObjectId, utcnow
from podadmin.content.models import Pod, PodStage

# ==================== ENUMS ====================

class StageStatus(str, Enum):
    LOCKED = "locked"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

class ProblemAttemptStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

class PodAttemptStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"

# ==================== ATTEMPT MODELS ====================

class PracticeProblemAttempt(ApiModel):
    problem_id: str
    user_answer: str
    is_correct: bool
    attempts: int = Field(1, ge=1)
    time_spent: float = Field(0, ge=0)
    completed_at: datetime = Field(default_factory=utcnow)

class MCQAttempt(ApiModel):
    question_id: str
    selected_option_id: str
    is_correct: bool
    time_spent: float = Field(0, ge=0)
    completed_at: datetime = Field(default_factory=utcnow)

class UserStageProgress(ApiModel):
    id: PyObjectId = Field(..., alias="_id")
    user_id: str
    stage_id: PyObjectId
    pod_attempt_id: PyObjectId
    status: StageStatus = StageStatus.LOCKED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    time_spent: float = 0
    last_accessed_at: Optional[datetime] = None
    practice_problem_attempts: List[PracticeProblemAttempt] = []
    mcq_attempts: List[MCQAttempt] = []
    assessment_score: Optional[float] = None
    max_assessment_score: float = 100
    resources_viewed: List[str] = []
    case_studies_viewed: List[str] = []
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

# ==================== REQUEST MODELS ====================

class StageComplete(ApiModel):
    assessment_score: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None

class StageProgressUpdate(ApiModel):
    time_spent: Optional[float] = Field(None, ge=0)
    resources_viewed: Optional[List[str]] = None
    case_studies_viewed: Optional[List[str]] = None
    practice_problem_attempts: Optional[List[PracticeProblemAttempt]] = None
    mcq_attempts: Optional[List[MCQAttempt]] = None

class PracticeSubmission(ApiModel):
    problem_id: str
    user_answer: str
    time_spent: Optional[float] = Field(None, ge=0)

class AssessmentSubmission(ApiModel):
    question_id: str
    selected_option_id: str
    time_spent: Optional[float] = Field(None, ge=0)

# ==================== RESPONSE MODELS ====================

class StageProgressResponse(ApiModel):
    message: str
    stage_progress: UserStageProgress

class PracticeResult(ApiModel):
    is_correct: bool
    solution: Optional[str] = None
    message: str

class AssessmentResult(ApiModel):
    is_correct: bool
    explanation: Optional[str] = None
    correct_option: Optional[str] = None

class StageWithProgress(PodStage):
    user_progress: Optional[UserStageProgress] = None

class PodStages(ApiModel):
    pod: Pod
    stages: List[StageWithProgress]

class StageDetail(StageWithProgress):
    external_content: Optional[str] = None

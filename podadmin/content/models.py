from pydantic import Field
from typing import Any, ClassVar, FrozenSet, List, Optional
from datetime import datetime
from enum import Enum

from podadmin.common import ApiModel, Pagination, PartialUpdate, PyObjectId

# ==================== ENUMS ====================

class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

class PodPhase(str, Enum):
    RESEARCH = "research"
    DESIGN = "design"
    IMPLEMENTATION = "implementation"
    REFLECTION = "reflection"

class PodMode(str, Enum):
    SINGLE_STAGE = "single_stage"
    MULTI_STAGE = "multi_stage"

class PodResourceType(str, Enum):
    VIDEO = "video"
    PDF = "pdf"
    LINK = "link"
    MCQ = "mcq"

class StageType(str, Enum):
    INTRODUCTION = "introduction"
    CASE_STUDIES = "case_studies"
    RESOURCES = "resources"
    PRACTICE = "practice"
    ASSESSMENT = "assessment"
    DOCUMENTATION = "documentation"

class StageResourceType(str, Enum):
    VIDEO = "video"
    PDF = "pdf"
    LINK = "link"

class QuestionType(str, Enum):
    DIRECT = "direct"
    SCENARIO = "scenario"

class ItemDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

class UnlockConditionType(str, Enum):
    PREVIOUS_STAGE_COMPLETION = "previous_stage_completion"
    TIME_SPENT = "time_spent"
    PRACTICE_PROBLEM_COMPLETION = "practice_problem_completion"
    RESOURCE_VIEW = "resource_view"

# ==================== PROBLEM MODELS ====================

class SkillWeight(ApiModel):
    skill_id: str
    weight: float = Field(..., ge=0)

class PodRef(ApiModel):
    pod_id: PyObjectId = Field(..., alias="pod")
    order: int
    weight: float = Field(1, ge=0)

class Problem(ApiModel):
    id: PyObjectId = Field(..., alias="_id")
    slug: str
    title: str
    description: Optional[str] = None
    description_md: Optional[str] = Field(None, alias="description_md")
    tagline: Optional[str] = None
    context_md: Optional[str] = Field(None, alias="context_md")
    difficulty: Difficulty
    estimated_hours: float
    skills: List[SkillWeight] = []
    version: int = 1
    is_public: bool = False
    pods: List[PodRef] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ProblemCreate(ApiModel):
    slug: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    description_md: Optional[str] = Field(None, alias="description_md")
    tagline: Optional[str] = None
    context_md: Optional[str] = Field(None, alias="context_md")
    difficulty: Difficulty
    estimated_hours: float = Field(..., ge=0)
    skills: List[SkillWeight] = []
    version: int = 1
    is_public: bool = False

class ProblemUpdate(PartialUpdate):
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset({"description", "description_md", "tagline", "context_md"})

    slug: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    description_md: Optional[str] = Field(None, alias="description_md")
    tagline: Optional[str] = None
    context_md: Optional[str] = Field(None, alias="context_md")
    difficulty: Optional[Difficulty] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    skills: Optional[List[SkillWeight]] = None
    version: Optional[int] = None
    is_public: Optional[bool] = None

# ==================== POD MODELS ====================

class PodResource(ApiModel):
    type: PodResourceType
    title: str
    url: Optional[str] = None
    content: Optional[str] = None

class Pod(ApiModel):
    id: PyObjectId = Field(..., alias="_id")
    problem_id: PyObjectId = Field(..., alias="problem")
    title: str
    phase: PodPhase
    order: int
    resources: List[PodResource] = []
    expected_outputs: List[str] = []
    description_md: Optional[str] = Field(None, alias="description_md")
    content_file_path: Optional[str] = Field(None, alias="content_file_path")
    mode: PodMode = PodMode.MULTI_STAGE
    estimated_minutes: int = 60
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class PodListItem(Pod):
    problem_title: Optional[str] = None
    problem_slug: Optional[str] = None

class PodCreate(ApiModel):
    problem_id: str = Field(..., alias="problem")
    title: str = Field(..., min_length=1)
    phase: PodPhase
    order: int = 0
    resources: List[PodResource] = []
    expected_outputs: List[str] = []
    description_md: Optional[str] = Field(None, alias="description_md")
    content_file_path: Optional[str] = Field(None, alias="content_file_path")
    mode: PodMode = PodMode.MULTI_STAGE
    estimated_minutes: int = Field(60, ge=0)

class PodUpdate(PartialUpdate):
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset({"description_md", "content_file_path"})

    title: Optional[str] = Field(None, min_length=1)
    phase: Optional[PodPhase] = None
    order: Optional[int] = None
    resources: Optional[List[PodResource]] = None
    expected_outputs: Optional[List[str]] = None
    description_md: Optional[str] = Field(None, alias="description_md")
    content_file_path: Optional[str] = Field(None, alias="content_file_path")
    mode: Optional[PodMode] = None
    estimated_minutes: Optional[int] = Field(None, ge=0)

# ==================== STAGE CONTENT MODELS ====================

class MCQOption(ApiModel):
    id: str
    text: str
    is_correct: bool = False
    explanation: Optional[str] = None

class MCQQuestion(ApiModel):
    id: str
    type: QuestionType = QuestionType.DIRECT
    question: str
    scenario: Optional[str] = None
    options: List[MCQOption] = []
    explanation: str = ""
    difficulty: ItemDifficulty = ItemDifficulty.MEDIUM

class PracticeProblem(ApiModel):
    id: str
    title: str
    description: str = ""
    problem_statement: str = ""
    hints: List[str] = []
    solution: Optional[str] = None
    difficulty: ItemDifficulty = ItemDifficulty.MEDIUM

class CaseStudy(ApiModel):
    id: str
    title: str
    description: str = ""
    content: str = ""
    questions: List[str] = []

class StageResource(ApiModel):
    type: StageResourceType
    title: str
    url: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None

class StageContent(ApiModel):
    introduction: Optional[str] = None
    learning_objectives: List[str] = []
    case_studies: List[CaseStudy] = []
    resources: List[StageResource] = []
    practice_problems: List[PracticeProblem] = []
    assessment_questions: List[MCQQuestion] = []
    content_md: Optional[str] = Field(None, alias="content_md")
    mcqs: List[MCQQuestion] = []

class UnlockCondition(ApiModel):
    type: UnlockConditionType
    value: Any = None
    description: str = ""

# ==================== STAGE MODELS ====================

class PodStage(ApiModel):
    id: PyObjectId = Field(..., alias="_id")
    pod_id: PyObjectId = Field(..., alias="pod")
    title: str
    description: str = ""
    order: int
    type: StageType
    content: StageContent = Field(default_factory=StageContent)
    unlock_conditions: List[UnlockCondition] = []
    estimated_minutes: int = 30
    is_required: bool = True
    stage_key: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class StageListItem(PodStage):
    pod_title: Optional[str] = None
    pod_phase: Optional[PodPhase] = None

class StageCreate(ApiModel):
    pod_id: str = Field(..., alias="pod")
    title: str = Field(..., min_length=1)
    description: str = ""
    order: int = 0
    type: StageType
    content: StageContent = Field(default_factory=StageContent)
    unlock_conditions: List[UnlockCondition] = []
    estimated_minutes: int = Field(30, ge=0)
    is_required: bool = True
    stage_key: Optional[str] = None

class StageUpdate(PartialUpdate):
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset({"stage_key"})

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    order: Optional[int] = None
    type: Optional[StageType] = None
    content: Optional[StageContent] = None
    unlock_conditions: Optional[List[UnlockCondition]] = None
    estimated_minutes: Optional[int] = Field(None, ge=0)
    is_required: Optional[bool] = None
    stage_key: Optional[str] = None

# ==================== RESPONSE MODELS ====================

class ProblemList(ApiModel):
    items: List[Problem]
    pagination: Pagination

class PodList(ApiModel):
    items: List[PodListItem]
    pagination: Pagination

class StageList(ApiModel):
    items: List[StageListItem]
    pagination: Pagination

class PodWithStages(Pod):
    stages: List[PodStage] = []

class ProblemDetail(Problem):
    pods: List[PodWithStages] = []
    external_content: Optional[str] = None

class PodContent(ApiModel):
    content: str
    content_type: str = "markdown"

class StageContentResponse(PodContent):
    stage_content: StageContent

from typing import Dict, List, Optional

from podadmin.common import ApiModel


class ActiveUsers(ApiModel):
    last_7_days: int
    last_30_days: int

class GrowthBucket(ApiModel):
    year: int
    month: int
    count: int

class UserAnalytics(ApiModel):
    total_users: int
    active_users: ActiveUsers
    user_growth: List[GrowthBucket]
    tier_distribution: Dict[str, int]

class ProblemCompletion(ApiModel):
    problem_id: str
    problem_slug: Optional[str] = None
    problem_title: Optional[str] = None
    total_attempts: int
    completed_attempts: int
    completion_rate: float

class ProblemAnalytics(ApiModel):
    total_problems: int
    public_problems: int
    private_problems: int
    difficulty_distribution: Dict[str, int]
    completion_rates: List[ProblemCompletion]

class PodCompletion(ApiModel):
    pod_id: str
    pod_title: Optional[str] = None
    pod_phase: Optional[str] = None
    total_attempts: int
    completed_attempts: int
    completion_rate: float
    avg_time_spent: float

class PodAnalytics(ApiModel):
    total_pods: int
    phase_distribution: Dict[str, int]
    completion_rates: List[PodCompletion]
    avg_time_spent: float

class StageScores(ApiModel):
    stage_id: str
    stage_title: Optional[str] = None
    stage_type: Optional[str] = None
    total_attempts: int
    completed_attempts: int
    completion_rate: float
    avg_assessment_score: Optional[float] = None
    avg_time_spent: float

class StageAnalytics(ApiModel):
    total_stages: int
    type_distribution: Dict[str, int]
    assessment_scores: List[StageScores]

class ProgressAnalytics(ApiModel):
    completion_rate: float
    abandonment_rate: float
    avg_completion_time: float
    active_attempts: int
    abandoned_attempts: int

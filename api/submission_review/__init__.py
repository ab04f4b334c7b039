from .engine import RiskAssessmentEngine
from .models import AssessmentResult, SubmissionInput
from .settings import Settings

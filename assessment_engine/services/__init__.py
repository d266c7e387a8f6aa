"""Engine services: question catalog, scoring, activity reduction and lifecycle."""

from assessment_engine.services.activity_service import ActivityService
from assessment_engine.services.assignment_service import AssignmentService
from assessment_engine.services.question_catalog import QuestionCatalog
from assessment_engine.services.scoring_service import ScoringService

__all__ = [
    "ActivityService",
    "AssignmentService",
    "QuestionCatalog",
    "ScoringService",
]

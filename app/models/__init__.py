# app/models/__init__.py
from .survey import Survey, QuestionGroup, Question, SubQuestion, SurveyResponse, SurveyAnswer
from .homepage import HomepageConfig


__all__ = ["Survey", "QuestionGroup", "Question", "SubQuestion", "SurveyResponse", "SurveyAnswer", "HomepageConfig"]

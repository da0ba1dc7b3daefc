"""
설문 응답 흐름

설문 구조로부터 답변 맵을 만들고, 제출 전 완결성을 검사한 뒤
저장할 답변 목록으로 변환한다. 답변 키는 ``questionId`` 또는
``questionId:subQuestionId`` 형식이다.
"""
from typing import Dict, List, Optional, Union

from app.schemas.response_schema import AnswerIn, ResponseSubmit
from app.schemas.survey_schema import SurveyOut, QuestionOut, PATIENT_TYPES


class _Unanswered:
    """아직 선택하지 않은 척도형 답변 ("해당없음" 과 구분)"""

    def __repr__(self):
        return "UNANSWERED"


UNANSWERED = _Unanswered()

AnswerValue = Union[int, str, None, _Unanswered]


class AnswerValidationError(ValueError):
    def __init__(self, message: str, question_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.question_id = question_id


def make_key(question_id: str, sub_question_id: Optional[str] = None) -> str:
    return f"{question_id}:{sub_question_id}" if sub_question_id else question_id


def parse_key(key: str) -> tuple:
    question_id, _, sub_question_id = key.partition(":")
    return question_id, sub_question_id or None


class AnswerSheet:
    def __init__(self, survey: SurveyOut):
        self.survey = survey
        self.answers: Dict[str, AnswerValue] = {}
        self.patient_name = ""
        self.patient_type = ""
        self.patient_info_answers: Dict[str, List[str]] = {}
        self._questions: Dict[str, QuestionOut] = {}

        for group in survey.question_groups:
            for question in group.questions:
                self._questions[question.id] = question
                if question.type == "text":
                    self.answers[make_key(question.id)] = ""
                elif question.sub_questions:
                    for sub in question.sub_questions:
                        self.answers[make_key(question.id, sub.id)] = UNANSWERED
                else:
                    self.answers[make_key(question.id)] = UNANSWERED

    @classmethod
    def from_survey(cls, survey: SurveyOut) -> "AnswerSheet":
        return cls(survey)

    def _question(self, question_id: str) -> QuestionOut:
        question = self._questions.get(question_id)
        if question is None:
            raise AnswerValidationError("설문에 없는 문항입니다.", question_id)
        return question

    def set_scale(self, question_id: str, value: Optional[int], sub_question_id: Optional[str] = None):
        question = self._question(question_id)
        key = make_key(question_id, sub_question_id)
        if question.type != "scale" or key not in self.answers:
            raise AnswerValidationError(f"{question.text}: 잘못된 답변입니다.", question_id)
        if value is None:
            if not question.include_none_option:
                raise AnswerValidationError(f"{question.text}: 해당없음을 선택할 수 없는 문항입니다.", question_id)
        elif not 1 <= value <= 5:
            raise AnswerValidationError(f"{question.text}: 1~5 사이의 값을 선택해주세요.", question_id)
        self.answers[key] = value

    def set_text(self, question_id: str, text: str):
        question = self._question(question_id)
        if question.type != "text":
            raise AnswerValidationError(f"{question.text}: 잘못된 답변입니다.", question_id)
        self.answers[make_key(question_id)] = text

    def toggle_patient_info(self, question_id: str, option: str):
        selected = self.patient_info_answers.get(question_id, [])
        if option in selected:
            self.patient_info_answers[question_id] = [o for o in selected if o != option]
        else:
            self.patient_info_answers[question_id] = [*selected, option]

    def fill(self, submission: ResponseSubmit) -> "AnswerSheet":
        """제출 요청을 답변 맵에 반영"""
        self.patient_name = submission.patient_name or ""
        self.patient_type = submission.patient_type or ""
        self.patient_info_answers = dict(submission.patient_info_answers or {})

        seen = set()
        for answer in submission.answers:
            key = make_key(answer.question_id, answer.sub_question_id)
            if key in seen:
                raise AnswerValidationError("같은 문항에 대한 답변이 중복되었습니다.", answer.question_id)
            seen.add(key)

            question = self._question(answer.question_id)
            if answer.value is not None and answer.text_value is not None:
                raise AnswerValidationError(f"{question.text}: 점수와 의견을 함께 입력할 수 없습니다.", question.id)
            if question.type == "text":
                self.set_text(answer.question_id, answer.text_value or "")
            elif answer.value is not None or "value" in answer.model_fields_set:
                self.set_scale(answer.question_id, answer.value, answer.sub_question_id)
        return self

    def validate(self):
        """첫 번째 누락 항목에서 AnswerValidationError"""
        config = self.survey.patient_info_config
        if self.patient_type.strip() not in PATIENT_TYPES:
            raise AnswerValidationError(f"{config.patient_type_label}을(를) 선택해주세요.")
        if config.patient_name_required and not self.patient_name.strip():
            raise AnswerValidationError(f"{config.patient_name_label}을(를) 입력해주세요.")
        for extra in config.additional_questions:
            if extra.required and not self.patient_info_answers.get(extra.id or ""):
                raise AnswerValidationError(f"{extra.text}에 답변해주세요.", extra.id)

        for group in self.survey.question_groups:
            for question in group.questions:
                if question.type == "text":
                    value = self.answers.get(make_key(question.id))
                    if not isinstance(value, str) or not value.strip():
                        raise AnswerValidationError(f"{question.text}에 답변해주세요.", question.id)
                    continue
                keys = [make_key(question.id, sub.id) for sub in question.sub_questions] or [make_key(question.id)]
                for key in keys:
                    value = self.answers.get(key, UNANSWERED)
                    if value is UNANSWERED:
                        raise AnswerValidationError(f"{question.text}에 답변해주세요.", question.id)
                    if value is None and not question.include_none_option:
                        raise AnswerValidationError(f"{question.text}에 답변해주세요.", question.id)

    def to_answers(self) -> List[AnswerIn]:
        answers = []
        for key, value in self.answers.items():
            if value is UNANSWERED:
                continue
            question_id, sub_question_id = parse_key(key)
            if isinstance(value, str):
                answers.append(AnswerIn(question_id=question_id, sub_question_id=sub_question_id, text_value=value))
            else:
                answers.append(AnswerIn(question_id=question_id, sub_question_id=sub_question_id, value=value))
        return answers

from datetime import datetime, timezone

import pytest

from app.flows.authoring import BuilderValidationError, SurveyBuilder
from app.flows.taking import UNANSWERED, AnswerSheet, AnswerValidationError
from app.schemas.response_schema import ResponseSubmit
from app.schemas.survey_schema import (
    ClosingMessage,
    PatientInfoConfig,
    PatientInfoQuestion,
    QuestionGroupOut,
    QuestionOut,
    SubQuestionOut,
    SurveyCreate,
    SurveyOut,
)


@pytest.fixture
def survey():
    return SurveyOut(
        id=7,
        title="Ward survey",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        question_groups=[
            QuestionGroupOut(
                id="g1",
                title="Care",
                order=0,
                questions=[
                    QuestionOut(
                        id="q1",
                        text="Nursing",
                        order=0,
                        include_none_option=True,
                        sub_questions=[
                            SubQuestionOut(id="s1", text="Day", order=0),
                            SubQuestionOut(id="s2", text="Night", order=1),
                        ],
                    ),
                    QuestionOut(id="q2", text="Doctor", order=1),
                    QuestionOut(id="q3", text="Comments", order=2, type="text"),
                ],
            )
        ],
        patient_info_config=PatientInfoConfig(
            patient_name_required=True,
            additional_questions=[
                PatientInfoQuestion(id="p1", text="Department", options=["IM", "GS"], required=True),
            ],
        ),
    )


def complete_submission(**overrides):
    data = {
        "surveyId": 7,
        "patientName": "Kim",
        "patientType": "ward-3",
        "patientInfoAnswers": {"p1": ["IM"]},
        "answers": [
            {"questionId": "q1", "subQuestionId": "s1", "value": 4},
            {"questionId": "q1", "subQuestionId": "s2", "value": None},
            {"questionId": "q2", "value": 5},
            {"questionId": "q3", "textValue": "Thanks"},
        ],
    }
    data.update(overrides)
    return ResponseSubmit.model_validate(data)


# ———————————————— 응답 흐름 ————————————————

def test_answer_sheet_initial_state(survey):
    sheet = AnswerSheet.from_survey(survey)

    assert sheet.answers == {
        "q1:s1": UNANSWERED,
        "q1:s2": UNANSWERED,
        "q2": UNANSWERED,
        "q3": "",
    }


def test_complete_submission_round_trips_to_answers(survey):
    sheet = AnswerSheet.from_survey(survey).fill(complete_submission())
    sheet.validate()

    answers = {(a.question_id, a.sub_question_id): (a.value, a.text_value) for a in sheet.to_answers()}
    assert answers == {
        ("q1", "s1"): (4, None),
        ("q1", "s2"): (None, None),
        ("q2", None): (5, None),
        ("q3", None): (None, "Thanks"),
    }


def test_validate_reports_first_missing_question(survey):
    submission = complete_submission(answers=[
        {"questionId": "q1", "subQuestionId": "s1", "value": 4},
        {"questionId": "q1", "subQuestionId": "s2", "value": 3},
        {"questionId": "q3", "textValue": "Thanks"},
    ])
    sheet = AnswerSheet.from_survey(survey).fill(submission)

    with pytest.raises(AnswerValidationError) as exc:
        sheet.validate()
    assert exc.value.question_id == "q2"
    assert "Doctor" in exc.value.message


def test_blank_text_answer_is_missing(survey):
    sheet = AnswerSheet.from_survey(survey).fill(complete_submission())
    sheet.set_text("q3", "   ")

    with pytest.raises(AnswerValidationError) as exc:
        sheet.validate()
    assert exc.value.question_id == "q3"


def test_not_applicable_rejected_without_none_option(survey):
    sheet = AnswerSheet.from_survey(survey)

    with pytest.raises(AnswerValidationError):
        sheet.set_scale("q2", None)
    sheet.set_scale("q1", None, "s1")
    assert sheet.answers["q1:s1"] is None


def test_scale_out_of_range_rejected(survey):
    sheet = AnswerSheet.from_survey(survey)

    with pytest.raises(AnswerValidationError):
        sheet.set_scale("q2", 6)


def test_duplicate_answer_keys_rejected(survey):
    submission = complete_submission(answers=[
        {"questionId": "q2", "value": 5},
        {"questionId": "q2", "value": 4},
    ])

    with pytest.raises(AnswerValidationError):
        AnswerSheet.from_survey(survey).fill(submission)


def test_unknown_question_rejected(survey):
    submission = complete_submission(answers=[{"questionId": "nope", "value": 1}])

    with pytest.raises(AnswerValidationError):
        AnswerSheet.from_survey(survey).fill(submission)


@pytest.mark.parametrize(
    "overrides",
    [
        {"patientType": "vip"},
        {"patientType": None},
        {"patientName": "  "},
        {"patientInfoAnswers": {"p1": []}},
    ],
)
def test_patient_info_is_validated(survey, overrides):
    sheet = AnswerSheet.from_survey(survey).fill(complete_submission(**overrides))

    with pytest.raises(AnswerValidationError):
        sheet.validate()


def test_toggle_patient_info(survey):
    sheet = AnswerSheet.from_survey(survey)

    sheet.toggle_patient_info("p1", "IM")
    sheet.toggle_patient_info("p1", "GS")
    sheet.toggle_patient_info("p1", "IM")

    assert sheet.patient_info_answers == {"p1": ["GS"]}


def test_fill_rejects_value_and_text_together(survey):
    submission = complete_submission(answers=[{"questionId": "q2", "value": 3, "textValue": "x"}])

    with pytest.raises(AnswerValidationError) as exc:
        AnswerSheet.from_survey(survey).fill(submission)
    assert exc.value.question_id == "q2"


@pytest.mark.parametrize("value", [0, 6, -1])
def test_fill_rejects_out_of_range_scale(survey, value):
    submission = complete_submission(answers=[{"questionId": "q2", "value": value}])

    with pytest.raises(AnswerValidationError, match="1~5"):
        AnswerSheet.from_survey(survey).fill(submission)


# ———————————————— 작성(빌더) 흐름 ————————————————

def filled_builder():
    builder = SurveyBuilder(title="Outpatient")
    builder.set_group_title(0, "Reception")
    builder.set_question_text(0, 0, "Waiting time")
    return builder


def test_new_builder_starts_with_one_group_and_question():
    builder = SurveyBuilder()

    assert len(builder.groups) == 1
    assert len(builder.groups[0].questions) == 1


def test_builder_validate_messages():
    builder = SurveyBuilder()
    with pytest.raises(BuilderValidationError, match="제목"):
        builder.validate()

    builder.title = "Outpatient"
    with pytest.raises(BuilderValidationError, match="그룹"):
        builder.validate()

    builder.set_group_title(0, "Reception")
    with pytest.raises(BuilderValidationError, match="문항"):
        builder.validate()

    builder.set_question_text(0, 0, "Waiting time")
    builder.validate()


def test_sub_questions_capped_at_five():
    builder = filled_builder()

    added = [builder.add_sub_question(0, 0, f"item {i}") for i in range(6)]

    assert added == [True] * 5 + [False]
    assert len(builder.groups[0].questions[0].sub_questions) == 5


def test_blank_sub_question_fails_validation():
    builder = filled_builder()
    builder.add_sub_question(0, 0)

    with pytest.raises(BuilderValidationError):
        builder.validate()


def test_switching_to_text_clears_sub_questions():
    builder = filled_builder()
    builder.add_sub_question(0, 0, "a")
    builder.set_include_none_option(0, 0, True)

    builder.set_question_type(0, 0, "text")

    question = builder.groups[0].questions[0]
    assert question.type == "text"
    assert question.sub_questions == []
    assert question.include_none_option is False
    assert builder.add_sub_question(0, 0, "b") is False


def test_removing_last_question_leaves_blank_question():
    builder = filled_builder()

    builder.remove_question(0, 0)

    assert len(builder.groups[0].questions) == 1
    assert builder.groups[0].questions[0].text == ""


def test_empty_closing_message_rejected():
    builder = filled_builder()
    builder.closing_message = ClosingMessage(text=" ")

    with pytest.raises(BuilderValidationError):
        builder.validate()


def test_to_payload_reindexes_orders():
    builder = filled_builder()
    builder.add_question(0)
    builder.set_question_text(0, 1, "Cleanliness")
    builder.add_group()
    builder.set_group_title(1, "Payment")
    builder.set_question_text(1, 0, "Billing")
    builder.remove_question(0, 0)

    payload = builder.to_payload()

    assert [g.order for g in payload.question_groups] == [0, 1]
    assert [(q.text, q.order) for q in payload.question_groups[0].questions] == [("Cleanliness", 0)]


def test_from_payload_sorts_and_truncates():
    data = SurveyCreate.model_validate({
        "title": " Ward ",
        "questionGroups": [
            {"title": "Second", "order": 1, "questions": [{"text": "B"}]},
            {"title": "First", "order": 0, "questions": [
                {"text": "Free", "type": "text", "includeNoneOption": True, "subQuestions": [{"text": "x"}]},
                {"text": "Many", "subQuestions": [{"text": str(i)} for i in range(7)]},
            ]},
        ],
    })

    payload = SurveyBuilder.from_payload(data).to_payload()

    assert payload.title == "Ward"
    assert [g.title for g in payload.question_groups] == ["First", "Second"]
    free, many = payload.question_groups[0].questions
    assert free.sub_questions == [] and free.include_none_option is False
    assert len(many.sub_questions) == 5


def test_patient_info_questions_are_sanitized():
    builder = filled_builder()
    builder.patient_info_config = PatientInfoConfig(additional_questions=[
        PatientInfoQuestion(text="Department", options=[" IM ", "", "GS"]),
        PatientInfoQuestion(text="  ", options=["x"]),
        PatientInfoQuestion(text="No options", options=[" "]),
    ])

    extra = builder.to_payload().patient_info_config.additional_questions

    assert len(extra) == 1
    assert extra[0].options == ["IM", "GS"]
    assert extra[0].id.startswith("patient-info-")


def test_from_survey_round_trip(survey):
    payload = SurveyBuilder.from_survey(survey).to_payload()

    assert payload.question_groups[0].id == "g1"
    assert [q.id for q in payload.question_groups[0].questions] == ["q1", "q2", "q3"]
    assert [s.id for s in payload.question_groups[0].questions[0].sub_questions] == ["s1", "s2"]

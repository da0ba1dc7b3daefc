from datetime import date, datetime, timezone
from io import BytesIO

from openpyxl import load_workbook

from app.export.reconciler import (
    DELETED_QUESTION_LABEL,
    HISTORICAL_ORDER_BASE,
    NOT_APPLICABLE_LABEL,
    NO_RESPONSES_SHEET,
    PLACEHOLDER_ORDER,
    SchemaEntry,
    build_descriptors,
    reconcile,
    resolve_label,
    sanitize_sheet_name,
)
from app.export.workbook import COLUMN_WIDTH, build_workbook
from app.schemas.response_schema import AnswerOut, ResponseOut
from app.schemas.survey_schema import (
    PatientInfoConfig,
    PatientInfoQuestion,
    QuestionGroupOut,
    QuestionOut,
    SubQuestionOut,
    SurveyOut,
)

SCENARIO_HEADERS = ["제출일시", "환자 성함", "환자 유형", "Service - Friendliness", "Service - Comments (주관식)"]


def make_survey(groups=None, patient_info_config=None):
    if groups is None:
        groups = [
            QuestionGroupOut(
                id="g1",
                title="Service",
                order=0,
                questions=[
                    QuestionOut(id="q1", text="Friendliness", order=0, type="scale", include_none_option=True),
                    QuestionOut(id="q2", text="Comments", order=1, type="text"),
                ],
            )
        ]
    return SurveyOut(
        id=1,
        title="Satisfaction",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        question_groups=groups,
        patient_info_config=patient_info_config or PatientInfoConfig(),
    )


def make_response(response_id, answers, submitted_at=None, patient_type="outpatient", **kwargs):
    return ResponseOut(
        id=response_id,
        survey_id=1,
        patient_type=patient_type,
        submitted_at=submitted_at or datetime(2024, 1, 15, 3, 0, tzinfo=timezone.utc),
        answers=answers,
        **kwargs,
    )


def test_scenario_single_sheet_header_and_row():
    response = make_response(1, [
        AnswerOut(question_id="q1", value=4),
        AnswerOut(question_id="q2", text_value="Great"),
    ])

    result = reconcile(make_survey(), [response])

    assert [sheet.name for sheet in result.sheets] == ["outpatient"]
    header, row = result.sheets[0].rows
    assert header == SCENARIO_HEADERS
    # 03:00 UTC → 서울 12:00
    assert row == ["2024-01-15 12:00:00", "", "outpatient", 4, "Great"]


def test_null_scale_value_renders_not_applicable():
    response = make_response(1, [
        AnswerOut(question_id="q1", value=None),
        AnswerOut(question_id="q2", text_value="ok"),
    ])

    result = reconcile(make_survey(), [response])

    assert result.sheets[0].rows[1][3] == NOT_APPLICABLE_LABEL


def test_missing_answer_renders_empty_cell():
    response = make_response(1, [AnswerOut(question_id="q1", value=2)])

    result = reconcile(make_survey(), [response])

    assert result.sheets[0].rows[1][3:] == [2, ""]


def test_date_filter_is_inclusive_local_dates():
    responses = [
        make_response(1, [AnswerOut(question_id="q1", value=1)], datetime(2024, 1, 1, 3, tzinfo=timezone.utc)),
        make_response(2, [AnswerOut(question_id="q1", value=2)], datetime(2024, 1, 15, 3, tzinfo=timezone.utc)),
        make_response(3, [AnswerOut(question_id="q1", value=3)], datetime(2024, 2, 1, 3, tzinfo=timezone.utc)),
    ]

    result = reconcile(make_survey(), responses, date_from=date(2024, 1, 10), date_to=date(2024, 1, 31))

    assert [r.id for r in result.responses] == [2]
    assert result.total == 1


def test_naive_timestamps_are_treated_as_utc():
    # 2024-01-09 20:00 UTC 는 서울 기준 01-10
    response = make_response(1, [], datetime(2024, 1, 9, 20, 0))

    result = reconcile(make_survey(), [response], date_from=date(2024, 1, 10))

    assert result.total == 1
    assert result.sheets[0].rows[1][0] == "2024-01-10 05:00:00"


def test_header_length_matches_descriptors_and_patient_info():
    groups = [
        QuestionGroupOut(
            id="g1",
            title="Ward",
            order=0,
            questions=[
                QuestionOut(
                    id="q1",
                    text="Nursing",
                    order=0,
                    sub_questions=[
                        SubQuestionOut(id="s1", text="Day", order=0),
                        SubQuestionOut(id="s2", text="Night", order=1),
                    ],
                ),
                QuestionOut(id="q2", text="Meals", order=1),
                QuestionOut(id="q3", text="Other", order=2, type="text"),
            ],
        )
    ]
    config = PatientInfoConfig(additional_questions=[
        PatientInfoQuestion(id="p1", text="Visit count", options=["first", "repeat"]),
    ])

    result = reconcile(make_survey(groups, config), [])

    assert len(result.descriptors) == 4
    assert len(result.headers) == 3 + 1 + len(result.descriptors)
    assert result.headers[3] == "Visit count"
    assert result.headers[4:6] == ["Ward - Nursing (Day)", "Ward - Nursing (Night)"]


def test_patient_info_answers_are_joined():
    config = PatientInfoConfig(additional_questions=[
        PatientInfoQuestion(id="p1", text="Department", options=["IM", "GS"]),
    ])
    response = make_response(1, [], patient_info_answers={"p1": ["IM", "GS"]}, patient_name="Kim")

    result = reconcile(make_survey(patient_info_config=config), [response])

    assert result.sheets[0].rows[1][1:4] == ["Kim", "outpatient", "IM, GS"]


def test_deleted_question_resolved_from_snapshot():
    snapshot = [{
        "id": "g-old",
        "title": "Facilities",
        "order": 0,
        "questions": [{"id": "q-old", "text": "Parking", "order": 0, "type": "scale"}],
    }]
    response = make_response(1, [AnswerOut(question_id="q-old", value=5)], question_snapshot=snapshot)

    result = reconcile(make_survey(), [response])

    assert result.headers[-1] == "Facilities - Parking"
    assert result.descriptors[-1].order == HISTORICAL_ORDER_BASE
    assert result.sheets[0].rows[1][-1] == 5


def test_deleted_question_resolved_from_schema_lookup():
    lookup = {
        "q-x": SchemaEntry(
            group_title="Archive",
            group_index=2,
            question_index=1,
            # 저장된 order 값이 아니라 그룹 안의 위치로 열 순서를 정함
            question=QuestionOut(id="q-x", text="Meals", order=7, type="text"),
        )
    }
    response = make_response(1, [AnswerOut(question_id="q-x", text_value="cold")])

    result = reconcile(make_survey(), [response], schema_lookup=lookup)

    assert result.headers[-1] == "Archive - Meals (주관식)"
    assert result.descriptors[-1].order == HISTORICAL_ORDER_BASE + 2010
    assert result.sheets[0].rows[1][-1] == "cold"


def test_unresolvable_answer_gets_placeholder_column():
    response = make_response(1, [
        AnswerOut(question_id="gone", value=3),
        AnswerOut(question_id="gone-2", sub_question_id="sub", value=1),
    ])

    result = reconcile(make_survey(), [response])

    assert result.headers[-2:] == [DELETED_QUESTION_LABEL, "[deleted question] ([deleted sub-question])"]
    assert result.sheets[0].rows[1][-2:] == [3, 1]


def test_placeholder_type_considers_every_orphan_answer():
    responses = [
        make_response(1, [AnswerOut(question_id="gone", value=None)],
                      submitted_at=datetime(2024, 1, 15, 3, 0, tzinfo=timezone.utc)),
        make_response(2, [AnswerOut(question_id="gone", text_value="note")],
                      submitted_at=datetime(2024, 1, 16, 3, 0, tzinfo=timezone.utc)),
    ]

    result = reconcile(make_survey(), responses)

    assert result.headers[-1] == "[deleted question] (주관식)"
    assert [row[-1] for row in result.sheets[0].rows[1:]] == ["note", ""]


def test_placeholder_with_mixed_answers_keeps_both():
    responses = [
        make_response(1, [AnswerOut(question_id="gone", text_value="note")],
                      submitted_at=datetime(2024, 1, 15, 3, 0, tzinfo=timezone.utc)),
        make_response(2, [AnswerOut(question_id="gone", value=4)],
                      submitted_at=datetime(2024, 1, 16, 3, 0, tzinfo=timezone.utc)),
    ]

    result = reconcile(make_survey(), responses)

    assert result.headers[-1] == DELETED_QUESTION_LABEL
    assert [row[-1] for row in result.sheets[0].rows[1:]] == [4, "note"]


def test_placeholder_sorts_after_historical_columns():
    snapshot = [{
        "id": "g-old",
        "title": "Old",
        "order": 0,
        "questions": [{"id": "q-old", "text": "Parking", "order": 0}],
    }]
    responses = [
        make_response(1, [AnswerOut(question_id="gone", value=1)]),
        make_response(2, [AnswerOut(question_id="q-old", value=2)], question_snapshot=snapshot),
    ]

    descriptors = build_descriptors(make_survey(), responses)

    assert [d.source for d in descriptors] == ["current", "current", "snapshot", "placeholder"]


def test_resolve_label_prefers_snapshot_over_schema():
    snapshot = [QuestionGroupOut(
        id="g", title="Snap", order=0,
        questions=[QuestionOut(id="q", text="From snapshot", order=0)],
    )]
    lookup = {"q": SchemaEntry(
        group_title="Schema", group_index=0, question_index=0, question=QuestionOut(id="q", text="From schema"),
    )}

    assert resolve_label("q", None, snapshot, lookup).label == "Snap - From snapshot"
    assert resolve_label("q", None, None, lookup).label == "Schema - From schema"
    assert resolve_label("q", None).order == PLACEHOLDER_ORDER


def test_broken_snapshot_falls_back_to_placeholder():
    response = make_response(1, [AnswerOut(question_id="q-old", value=2)], question_snapshot=[{"bogus": True}])

    result = reconcile(make_survey(), [response])

    assert result.headers[-1] == DELETED_QUESTION_LABEL


def test_sheets_follow_patient_type_order():
    responses = [
        make_response(1, [], patient_type="checkup"),
        make_response(2, [], patient_type="vip"),
        make_response(3, [], patient_type=None),
        make_response(4, [], patient_type="outpatient"),
    ]

    result = reconcile(make_survey(), responses)

    assert [sheet.name for sheet in result.sheets] == ["outpatient", "checkup", "vip", "미입력"]


def test_rows_within_sheet_are_newest_first():
    responses = [
        make_response(1, [], datetime(2024, 1, 1, tzinfo=timezone.utc)),
        make_response(2, [], datetime(2024, 1, 3, tzinfo=timezone.utc)),
        make_response(3, [], datetime(2024, 1, 2, tzinfo=timezone.utc)),
    ]

    result = reconcile(make_survey(), responses)

    assert [row[0][:10] for row in result.sheets[0].rows[1:]] == ["2024-01-03", "2024-01-02", "2024-01-01"]
    assert result.latest_submitted_at == datetime(2024, 1, 3, tzinfo=timezone.utc)
    assert result.oldest_submitted_at == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_no_responses_yields_header_only_sheet():
    result = reconcile(make_survey(), [])

    assert len(result.sheets) == 1
    assert result.sheets[0].name == NO_RESPONSES_SHEET
    assert result.sheets[0].rows == [SCENARIO_HEADERS]


def test_empty_survey_still_produces_fixed_headers():
    result = reconcile(make_survey(groups=[]), [])

    assert result.headers == ["제출일시", "환자 성함", "환자 유형"]


def test_reconcile_is_idempotent():
    responses = [
        make_response(1, [AnswerOut(question_id="q1", value=3), AnswerOut(question_id="gone", value=1)]),
        make_response(2, [AnswerOut(question_id="q2", text_value="fine")], patient_type="ward-3"),
    ]

    first = reconcile(make_survey(), responses)
    second = reconcile(make_survey(), responses)

    assert first.headers == second.headers
    assert [s.rows for s in first.sheets] == [s.rows for s in second.sheets]


def test_sanitize_sheet_name():
    used = set()

    assert sanitize_sheet_name("a/b:c*?[x]") == "a_b_c___x_"
    assert len(sanitize_sheet_name("x" * 40)) == 31
    assert sanitize_sheet_name("   ") == "Sheet"
    assert sanitize_sheet_name("ward", used) == "ward"
    assert sanitize_sheet_name("WARD", used) == "WARD (2)"


def test_build_workbook_writes_sheets():
    response = make_response(1, [AnswerOut(question_id="q1", value=4)])
    result = reconcile(make_survey(), [response])

    wb = load_workbook(BytesIO(build_workbook(result.sheets)))

    assert wb.sheetnames == ["outpatient"]
    ws = wb["outpatient"]
    assert [cell.value for cell in ws[1]] == SCENARIO_HEADERS
    assert ws["D2"].value == 4
    # 빈 문자열은 빈 셀로
    assert ws["B2"].value is None
    assert ws["E2"].value is None
    assert ws.column_dimensions["A"].width == COLUMN_WIDTH

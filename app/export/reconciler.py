"""
응답 엑셀 내보내기 - 열 구성 및 행 생성

현재 설문 구조를 기준으로 열(Descriptor)을 만들고, 구조 변경 이후에도
남아 있는 과거 답변은 아래 순서로 열 정보를 복원한다.

1. 응답에 함께 저장된 문항 구조 사본(question_snapshot)
2. 문항 테이블 조회 결과(schema_lookup, 현재 설문 우선 → 전체 설문)
3. "[deleted question]" 자리표시 열 (맨 뒤)

DB 에 접근하지 않으며 조회 결과는 호출하는 쪽에서 넘겨준다.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from app.logger import get_logger
from app.schemas.response_schema import AnswerOut, ResponseOut
from app.schemas.survey_schema import (
    SurveyOut,
    QuestionGroupOut,
    QuestionOut,
    PatientInfoQuestion,
    PATIENT_TYPES,
)
from app.utils.timeutil import format_local, to_local, within_date_range

logger = get_logger('export')

FIXED_HEADERS = ["제출일시", "환자 성함", "환자 유형"]
TEXT_SUFFIX = "(주관식)"
NOT_APPLICABLE_LABEL = "해당없음"
DELETED_QUESTION_LABEL = "[deleted question]"
DELETED_SUB_QUESTION_LABEL = "[deleted sub-question]"
UNSPECIFIED_PATIENT_TYPE = "미입력"
NO_RESPONSES_SHEET = "응답없음"

HISTORICAL_ORDER_BASE = 100000
PLACEHOLDER_ORDER = 999999

SHEET_NAME_MAX = 31
_SHEET_NAME_FORBIDDEN = set('\\/:*?[]')

_snapshot_adapter = TypeAdapter(List[QuestionGroupOut])

Cell = Union[str, int, None]


@dataclass(frozen=True)
class Descriptor:
    """엑셀 한 열에 대응하는 문항/하위 문항"""
    question_id: str
    sub_question_id: Optional[str]
    label: str
    order: int
    is_text: bool
    source: str = "current"  # current, snapshot, schema, placeholder

    @property
    def key(self) -> str:
        return descriptor_key(self.question_id, self.sub_question_id)


@dataclass(frozen=True)
class SchemaEntry:
    """문항 테이블에서 찾은 문항과 소속 그룹. index 는 설문/그룹 안에서의 위치 (0부터)"""
    group_title: str
    group_index: int
    question_index: int
    question: QuestionOut


@dataclass
class Sheet:
    name: str
    rows: List[List[Cell]]


@dataclass
class ExportResult:
    headers: List[str]
    descriptors: List[Descriptor]
    sheets: List[Sheet]
    responses: List[ResponseOut] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.responses)

    @property
    def latest_submitted_at(self) -> Optional[datetime]:
        if not self.responses:
            return None
        return max(self.responses, key=lambda r: to_local(r.submitted_at)).submitted_at

    @property
    def oldest_submitted_at(self) -> Optional[datetime]:
        if not self.responses:
            return None
        return min(self.responses, key=lambda r: to_local(r.submitted_at)).submitted_at


def descriptor_key(question_id: str, sub_question_id: Optional[str] = None) -> str:
    return f"{question_id}:{sub_question_id}" if sub_question_id else question_id


def unit_order(group_index: int, question_index: int, sub_index: int = 0) -> int:
    return group_index * 1000 + question_index * 10 + sub_index


def column_label(group_title: str, question_text: str, sub_text: Optional[str] = None, is_text: bool = False) -> str:
    label = f"{group_title} - {question_text}" if group_title else question_text
    if sub_text is not None:
        return f"{label} ({sub_text})"
    if is_text:
        return f"{label} {TEXT_SUFFIX}"
    return label


def _sorted_by_order(items):
    return sorted(items, key=lambda item: item.order)


def _descriptors_for_question(
    group_title: str, question: QuestionOut, group_index: int, question_index: int,
    base: int = 0, source: str = "current",
) -> List[Descriptor]:
    if question.type == "text":
        return [Descriptor(
            question_id=question.id,
            sub_question_id=None,
            label=column_label(group_title, question.text, is_text=True),
            order=base + unit_order(group_index, question_index),
            is_text=True,
            source=source,
        )]
    if question.sub_questions:
        return [
            Descriptor(
                question_id=question.id,
                sub_question_id=sub.id,
                label=column_label(group_title, question.text, sub.text),
                order=base + unit_order(group_index, question_index, sub_index),
                is_text=False,
                source=source,
            )
            for sub_index, sub in enumerate(_sorted_by_order(question.sub_questions))
        ]
    return [Descriptor(
        question_id=question.id,
        sub_question_id=None,
        label=column_label(group_title, question.text),
        order=base + unit_order(group_index, question_index),
        is_text=False,
        source=source,
    )]


def current_descriptors(groups: Sequence[QuestionGroupOut]) -> Dict[str, Descriptor]:
    """현재 설문 구조의 모든 문항 열 (응답이 없어도 포함)"""
    descriptors: Dict[str, Descriptor] = {}
    for group_index, group in enumerate(_sorted_by_order(groups)):
        for question_index, question in enumerate(_sorted_by_order(group.questions)):
            for descriptor in _descriptors_for_question(group.title, question, group_index, question_index):
                descriptors[descriptor.key] = descriptor
    return descriptors


def parse_snapshot(snapshot: Optional[list]) -> List[QuestionGroupOut]:
    if not snapshot:
        return []
    try:
        return _snapshot_adapter.validate_python(snapshot)
    except ValidationError as e:
        logger.warning(f"문항 구조 사본을 읽을 수 없어 건너뜀: {e.error_count()}건 오류")
        return []


def _find_in_tree(
    question_id: str, sub_question_id: Optional[str], groups: Sequence[QuestionGroupOut],
) -> Optional[Descriptor]:
    for group_index, group in enumerate(_sorted_by_order(groups)):
        for question_index, question in enumerate(_sorted_by_order(group.questions)):
            if question.id != question_id:
                continue
            for descriptor in _descriptors_for_question(
                group.title, question, group_index, question_index, HISTORICAL_ORDER_BASE, "snapshot",
            ):
                if descriptor.sub_question_id == (sub_question_id or None):
                    return descriptor
            return None
    return None


def _from_schema(
    question_id: str, sub_question_id: Optional[str], entry: SchemaEntry,
) -> Optional[Descriptor]:
    for descriptor in _descriptors_for_question(
        entry.group_title, entry.question, entry.group_index, entry.question_index, HISTORICAL_ORDER_BASE, "schema",
    ):
        if descriptor.sub_question_id == (sub_question_id or None):
            return descriptor
    return None


def _placeholder(question_id: str, sub_question_id: Optional[str], answers: Sequence[AnswerOut]) -> Descriptor:
    # 같은 키의 답변 전체를 보고 판단: 숫자 값이 하나도 없고 글이 있으면 주관식
    is_text = (
        any(a.text_value is not None for a in answers)
        and all(a.value is None for a in answers)
    )
    if sub_question_id:
        label = f"{DELETED_QUESTION_LABEL} ({DELETED_SUB_QUESTION_LABEL})"
    elif is_text:
        label = f"{DELETED_QUESTION_LABEL} {TEXT_SUFFIX}"
    else:
        label = DELETED_QUESTION_LABEL
    return Descriptor(
        question_id=question_id,
        sub_question_id=sub_question_id or None,
        label=label,
        order=PLACEHOLDER_ORDER,
        is_text=is_text,
        source="placeholder",
    )


def resolve_label(
    question_id: str,
    sub_question_id: Optional[str],
    snapshot: Optional[Sequence[QuestionGroupOut]] = None,
    schema_lookup: Optional[Dict[str, SchemaEntry]] = None,
    answers: Sequence[AnswerOut] = (),
) -> Descriptor:
    """현재 구조에 없는 답변의 열 정보: 사본 → 문항 테이블 → 자리표시"""
    if snapshot:
        descriptor = _find_in_tree(question_id, sub_question_id, snapshot)
        if descriptor is not None:
            return descriptor
    entry = (schema_lookup or {}).get(question_id)
    if entry is not None:
        descriptor = _from_schema(question_id, sub_question_id, entry)
        if descriptor is not None:
            return descriptor
    return _placeholder(question_id, sub_question_id, answers)


def build_descriptors(
    survey: SurveyOut,
    responses: Sequence[ResponseOut],
    schema_lookup: Optional[Dict[str, SchemaEntry]] = None,
) -> List[Descriptor]:
    descriptors = current_descriptors(survey.question_groups)
    orphans: Dict[str, List[AnswerOut]] = {}
    for response in responses:
        for answer in response.answers:
            key = descriptor_key(answer.question_id, answer.sub_question_id)
            if key not in descriptors:
                orphans.setdefault(key, []).append(answer)

    for response in responses:
        snapshot = None
        for answer in response.answers:
            key = descriptor_key(answer.question_id, answer.sub_question_id)
            if key in descriptors:
                continue
            if snapshot is None:
                snapshot = parse_snapshot(response.question_snapshot)
            descriptors[key] = resolve_label(
                answer.question_id, answer.sub_question_id, snapshot, schema_lookup, orphans[key],
            )
    # 정렬은 안정 정렬이므로 같은 order 는 처음 나온 순서를 유지
    return sorted(descriptors.values(), key=lambda d: d.order)


def build_headers(descriptors: Sequence[Descriptor], patient_info_questions: Sequence[PatientInfoQuestion]) -> List[str]:
    return [*FIXED_HEADERS, *(q.text for q in patient_info_questions), *(d.label for d in descriptors)]


def answer_cell(answer: Optional[AnswerOut], descriptor: Descriptor) -> Cell:
    if answer is None:
        return ""
    if descriptor.is_text:
        if answer.text_value is not None:
            return answer.text_value
        return answer.value if answer.value is not None else ""
    if answer.value is not None:
        return answer.value
    # 삭제 문항 열에서는 척도/주관식 답변이 섞일 수 있음
    if answer.text_value is not None:
        return answer.text_value
    return NOT_APPLICABLE_LABEL


def build_row(
    response: ResponseOut,
    descriptors: Sequence[Descriptor],
    patient_info_questions: Sequence[PatientInfoQuestion],
) -> List[Cell]:
    answers: Dict[str, AnswerOut] = {}
    for answer in response.answers:
        answers.setdefault(descriptor_key(answer.question_id, answer.sub_question_id), answer)

    info_answers = response.patient_info_answers or {}
    row: List[Cell] = [
        format_local(response.submitted_at),
        response.patient_name or "",
        response.patient_type or "",
    ]
    for question in patient_info_questions:
        selected = info_answers.get(question.id or "")
        row.append(", ".join(selected) if selected else "")
    for descriptor in descriptors:
        row.append(answer_cell(answers.get(descriptor.key), descriptor))
    return row


def normalize_patient_type(patient_type: Optional[str]) -> str:
    return (patient_type or "").strip() or UNSPECIFIED_PATIENT_TYPE


def partition_by_patient_type(responses: Sequence[ResponseOut]) -> List[Tuple[str, List[ResponseOut]]]:
    """고정 환자 유형 순 → 기타 유형(가나다순) → 미입력. 그룹 안은 최신 제출 순"""
    grouped: Dict[str, List[ResponseOut]] = {}
    for response in responses:
        grouped.setdefault(normalize_patient_type(response.patient_type), []).append(response)

    def sort_key(name: str):
        if name in PATIENT_TYPES:
            return 0, PATIENT_TYPES.index(name), ""
        if name == UNSPECIFIED_PATIENT_TYPE:
            return 2, 0, ""
        return 1, 0, name

    return [
        (name, sorted(grouped[name], key=lambda r: (to_local(r.submitted_at), r.id), reverse=True))
        for name in sorted(grouped, key=sort_key)
    ]


def sanitize_sheet_name(name: str, used: Optional[set] = None) -> str:
    cleaned = "".join("_" if ch in _SHEET_NAME_FORBIDDEN else ch for ch in name).strip()
    cleaned = cleaned[:SHEET_NAME_MAX] or "Sheet"
    if used is None:
        return cleaned
    candidate, suffix = cleaned, 2
    while candidate.lower() in used:
        tail = f" ({suffix})"
        candidate = cleaned[:SHEET_NAME_MAX - len(tail)] + tail
        suffix += 1
    used.add(candidate.lower())
    return candidate


def reconcile(
    survey: SurveyOut,
    responses: Sequence[ResponseOut],
    schema_lookup: Optional[Dict[str, SchemaEntry]] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> ExportResult:
    filtered = [r for r in responses if within_date_range(r.submitted_at, date_from, date_to)]
    descriptors = build_descriptors(survey, filtered, schema_lookup)
    extra_questions = survey.patient_info_config.additional_questions
    headers = build_headers(descriptors, extra_questions)

    used_names: set = set()
    partitions = partition_by_patient_type(filtered)
    if not partitions:
        sheets = [Sheet(name=sanitize_sheet_name(NO_RESPONSES_SHEET, used_names), rows=[list(headers)])]
    else:
        sheets = [
            Sheet(
                name=sanitize_sheet_name(name, used_names),
                rows=[list(headers), *(build_row(r, descriptors, extra_questions) for r in group)],
            )
            for name, group in partitions
        ]

    logger.info(
        f"설문 {survey.id} 내보내기: 응답 {len(filtered)}건, 열 {len(descriptors)}개, 시트 {len(sheets)}개"
    )
    return ExportResult(headers=headers, descriptors=descriptors, sheets=sheets, responses=filtered)

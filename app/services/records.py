"""Student, subject and mark operations over the document store."""

import logging
import re
from collections.abc import Iterable
from typing import Any

from app.core.exceptions import ConsistencyError, NotFoundError, StoreError, ValidationError
from app.schemas.batch import BatchResult, Mutation, MutationKind
from app.schemas.marks import SubjectMark, parse_score
from app.schemas.student import (
    StudentCreate,
    StudentFilter,
    StudentRecord,
    StudentUpdate,
    StudentWriteResponse,
)
from app.schemas.subject import SubjectConfig, SubjectCreate, SubjectUpdate
from app.services.aggregate import apply_aggregate, performance_level_for, with_marks
from app.services.batch import BatchMutationOrchestrator, Validator
from app.services.cache import CacheEntry, RecordsCache
from app.services.grading import UNCHANGED, apply_mark_update, reevaluate, validate_score
from app.store.base import STUDENTS, SUBJECTS, SUPPLEMENTARY_EXAMS, DocumentStore

logger = logging.getLogger(__name__)

# Document fields derived from marks; always written together with marks
AGGREGATE_FIELDS = ("grand_total", "average", "performance_level")

# Subject fields an update may leave out but never null
REQUIRED_SUBJECT_FIELDS = ("name", "max_ta", "max_ce", "passing_total", "subject_type", "target_classes")


def to_title_case(value: str | None) -> str:
    """Title Case with collapsed whitespace, e.g. "usman  hudawi" -> "Usman Hudawi"."""
    if not value:
        return ""
    words = re.sub(r"\s+", " ", value.strip()).split(" ")
    return " ".join(w[:1].upper() + w[1:].lower() for w in words if w)


def marks_payload(student: StudentRecord) -> dict[str, Any]:
    """Marks plus the aggregates derived from them, in document form."""
    document = student.to_document()
    return {"marks": document["marks"], **{field: document[field] for field in AGGREGATE_FIELDS}}


def parse_component(raw: Any, component: str) -> Any:
    """Parse one mark component of a request. Bad values raise ValidationError naming the component."""
    try:
        return parse_score(raw)
    except ValueError as e:
        raise ValidationError(str(e), details={"column": component, "value": str(raw)})


class RecordsService:
    """Record operations. Single-item operations raise; bulk ones report per item."""

    def __init__(
        self,
        store: DocumentStore,
        cache: RecordsCache,
        orchestrator: BatchMutationOrchestrator,
        known_classes: Iterable[str],
    ):
        self.store = store
        self.cache = cache
        self.orchestrator = orchestrator
        self.known_classes = list(known_classes)

    # ==========================================
    # Reads
    # ==========================================

    async def fresh_snapshot(self) -> CacheEntry:
        """Cache snapshot that is safe to base writes on."""
        entry = await self.cache.read()
        if entry.stale:
            raise StoreError("Store unavailable; refusing to write from a stale snapshot")
        return entry

    async def list_students(self, filters: StudentFilter | None = None) -> list[StudentRecord]:
        """Students in display order."""
        students = await self.cache.students()
        if filters:
            if filters.class_name:
                students = [s for s in students if s.class_name == filters.class_name]
            if filters.search:
                term = filters.search.lower()
                students = [s for s in students if term in s.name.lower() or term in s.admission_no.lower()]
        return students

    async def students_by_class(self, class_name: str) -> list[StudentRecord]:
        return await self.cache.students_in_class(class_name)

    async def get_student(self, student_id: str) -> StudentRecord:
        """Get student by ID, straight from the store."""
        document = await self.store.get(STUDENTS, student_id)
        if document is None:
            raise NotFoundError("Student", student_id)
        return StudentRecord.model_validate(document)

    async def get_student_by_admission_no(self, admission_no: str) -> StudentRecord | None:
        documents = await self.store.query(STUDENTS, "admission_no", admission_no)
        return StudentRecord.model_validate(documents[0]) if documents else None

    async def list_subjects(self) -> list[SubjectConfig]:
        return await self.cache.subjects()

    async def subjects_for_class(self, class_name: str) -> list[SubjectConfig]:
        return [s for s in await self.cache.subjects() if class_name in s.target_classes]

    async def get_subject(self, subject_id: str) -> SubjectConfig:
        document = await self.store.get(SUBJECTS, subject_id)
        if document is None:
            raise NotFoundError("Subject", subject_id)
        return SubjectConfig.model_validate(document)

    async def enrolled_students(self, subject_id: str) -> list[StudentRecord]:
        """Students taking a subject: the enrolled ones for an elective, the whole target classes otherwise."""
        subject = await self.get_subject(subject_id)
        students = await self.cache.students()
        if not subject.is_elective:
            return [s for s in students if s.class_name in subject.target_classes]
        enrolled = set(subject.enrolled_students)
        return [s for s in students if s.id in enrolled]

    # ==========================================
    # Students
    # ==========================================

    def _check_class(self, class_name: str) -> None:
        if class_name not in self.known_classes:
            raise ValidationError(
                f'Invalid class "{class_name}". Must be one of: {", ".join(self.known_classes)}',
                details={"column": "class_name", "value": class_name},
            )

    async def _check_admission_no_free(self, admission_no: str, own_id: str | None = None) -> None:
        existing = await self.get_student_by_admission_no(admission_no)
        if existing and existing.id != own_id:
            raise ValidationError(
                f"Student with admission number {admission_no} already exists",
                details={"column": "admission_no", "value": admission_no},
            )

    async def _reranked(self, student_id: str, class_names: list[str]) -> StudentWriteResponse:
        """Re-rank ``class_names``, then read the student back with any ranking failures attached."""
        failures = await self.orchestrator.rerank(class_names)
        student = await self.get_student(student_id)
        return StudentWriteResponse(**student.model_dump(), ranking_failures=failures)

    async def add_student(self, request: StudentCreate) -> StudentWriteResponse:
        """Create a new student with empty marks."""
        self._check_class(request.class_name)
        await self._check_admission_no_free(request.admission_no)

        subjects = await self.cache.subjects()
        record = apply_aggregate(StudentRecord(id="", **request.model_dump()), subjects)
        student_id = await self.store.add(STUDENTS, record.to_document())
        self.cache.invalidate()
        logger.info(f"[STUDENT] Added {student_id} ({request.admission_no}) to {request.class_name}")

        return await self._reranked(student_id, [request.class_name])

    async def update_student(self, student_id: str, request: StudentUpdate) -> StudentWriteResponse:
        """Update a student's identity fields."""
        student = await self.get_student(student_id)
        update_data = request.model_dump(exclude_unset=True, exclude_none=True)

        if "class_name" in update_data:
            self._check_class(update_data["class_name"])
        if update_data.get("admission_no", student.admission_no) != student.admission_no:
            await self._check_admission_no_free(update_data["admission_no"], own_id=student_id)

        updated = student.model_copy(update=update_data)
        document = updated.to_document()
        await self.store.update(STUDENTS, student_id, {field: document[field] for field in update_data})
        self.cache.invalidate()

        moved = [student.class_name, updated.class_name] if updated.class_name != student.class_name else []
        return await self._reranked(student_id, moved)

    async def delete_student(self, student_id: str) -> list[str]:
        """Delete a student and re-rank their class. Returns the ranking failures."""
        student = await self.get_student(student_id)
        await self.store.delete(STUDENTS, student_id)
        self.cache.invalidate()
        logger.info(f"[STUDENT] Deleted {student_id} from {student.class_name}")
        return await self.orchestrator.rerank([student.class_name])

    async def insert_students(self, requests: list[StudentCreate]) -> BatchResult:
        """Insert many students. Errors are keyed by position in ``requests``."""
        entry = await self.fresh_snapshot()
        subjects = entry.subjects

        mutations = []
        for request in requests:
            record = apply_aggregate(StudentRecord(id="", **request.model_dump()), subjects)
            mutations.append(
                Mutation(
                    kind=MutationKind.INSERT,
                    collection=STUDENTS,
                    data=record.to_document(),
                    class_name=request.class_name,
                )
            )
        return await self.orchestrator.run(mutations, validator=self._student_insert_validator(entry))

    async def delete_students(self, student_ids: list[str]) -> BatchResult:
        """Delete many students; unknown ids are reported per item."""
        entry = await self.fresh_snapshot()
        by_id = {s.id: s for s in entry.students}

        mutations = [
            Mutation(
                kind=MutationKind.DELETE,
                collection=STUDENTS,
                doc_id=student_id,
                class_name=by_id[student_id].class_name if student_id in by_id else None,
            )
            for student_id in student_ids
        ]
        return await self.orchestrator.run(mutations, validator=self._existing_students_validator(by_id))

    def _student_insert_validator(self, entry: CacheEntry) -> Validator:
        existing = {s.admission_no for s in entry.students}
        seen: set[str] = set()

        async def validate(mutation: Mutation) -> None:
            data = mutation.data
            if not all(str(data.get(field) or "").strip() for field in ("admission_no", "name", "class_name")):
                raise ValidationError("Missing required fields (admission number, name or class)")
            admission_no = str(data["admission_no"]).strip()
            if admission_no in existing:
                raise ValidationError(f"Student with admission number {admission_no} already exists")
            if admission_no in seen:
                raise ValidationError(f"Duplicate admission number {admission_no} in this batch")
            seen.add(admission_no)

        return validate

    def _existing_students_validator(self, by_id: dict[str, StudentRecord]) -> Validator:
        async def validate(mutation: Mutation) -> None:
            if mutation.doc_id not in by_id:
                raise ValidationError(f"Student {mutation.doc_id} not found")

        return validate

    def marks_validator(self, entry: CacheEntry) -> Validator:
        """Reject student updates for unknown students or with out-of-range marks."""
        by_id = {s.id: s for s in entry.students}
        catalogue = entry.subject_map()

        async def validate(mutation: Mutation) -> None:
            if mutation.doc_id not in by_id:
                raise ValidationError(f"Student {mutation.doc_id} not found")
            for subject_id, raw_mark in (mutation.data.get("marks") or {}).items():
                subject = catalogue.get(subject_id)
                if subject is None:
                    continue
                try:
                    mark = SubjectMark.model_validate(raw_mark)
                except ValueError as e:
                    raise ValidationError(f"Invalid marks for {subject.name}: {e}")
                validate_score(subject, "ta", mark.ta)
                validate_score(subject, "ce", mark.ce)

        return validate

    # ==========================================
    # Subjects
    # ==========================================

    async def add_subject(self, request: SubjectCreate) -> SubjectConfig:
        data = request.model_dump(mode="json")
        data["faculty_name"] = to_title_case(request.faculty_name)
        data["enrolled_students"] = []
        subject_id = await self.store.add(SUBJECTS, data)
        self.cache.invalidate()
        logger.info(f"[SUBJECT] Added {subject_id} ({request.name})")
        return await self.get_subject(subject_id)

    async def update_subject(self, subject_id: str, request: SubjectUpdate) -> SubjectConfig:
        """Administrative edit. Stored statuses are not recomputed."""
        await self.get_subject(subject_id)
        update_data = request.model_dump(mode="json", exclude_unset=True)
        if "faculty_name" in update_data:
            update_data["faculty_name"] = to_title_case(update_data["faculty_name"])
        for field in REQUIRED_SUBJECT_FIELDS:
            if field in update_data and update_data[field] is None:
                update_data.pop(field)
        await self.store.update(SUBJECTS, subject_id, update_data)
        self.cache.invalidate()
        return await self.get_subject(subject_id)

    async def delete_subject(self, subject_id: str) -> None:
        await self.get_subject(subject_id)
        await self.store.delete(SUBJECTS, subject_id)
        self.cache.invalidate()
        logger.info(f"[SUBJECT] Deleted {subject_id}")

    async def enroll_student(self, subject_id: str, student_id: str) -> SubjectConfig:
        """Enroll a student into an elective subject."""
        subject = await self.get_subject(subject_id)
        if not subject.is_elective:
            raise ConsistencyError(
                "Cannot enroll students in general subjects",
                details={"subject_id": subject_id},
            )
        await self.get_student(student_id)

        if student_id not in subject.enrolled_students:
            await self.store.update(
                SUBJECTS, subject_id, {"enrolled_students": [*subject.enrolled_students, student_id]}
            )
            self.cache.invalidate()
        return await self.get_subject(subject_id)

    async def unenroll_student(self, subject_id: str, student_id: str) -> SubjectConfig:
        subject = await self.get_subject(subject_id)
        if student_id in subject.enrolled_students:
            remaining = [s for s in subject.enrolled_students if s != student_id]
            await self.store.update(SUBJECTS, subject_id, {"enrolled_students": remaining})
            self.cache.invalidate()
        return await self.get_subject(subject_id)

    # ==========================================
    # Marks
    # ==========================================

    async def update_marks(self, student_id: str, subject_id: str, ta: Any, ce: Any) -> StudentWriteResponse:
        """Set both components of a subject mark."""
        return await self._write_mark(
            student_id,
            subject_id,
            ta=parse_component(ta, "ta"),
            ce=parse_component(ce, "ce"),
        )

    async def update_ta_marks(self, student_id: str, subject_id: str, ta: Any) -> StudentWriteResponse:
        """Set TA only; the stored CE is kept."""
        return await self._write_mark(student_id, subject_id, ta=parse_component(ta, "ta"))

    async def update_ce_marks(self, student_id: str, subject_id: str, ce: Any) -> StudentWriteResponse:
        """Set CE only; the stored TA is kept."""
        return await self._write_mark(student_id, subject_id, ce=parse_component(ce, "ce"))

    async def _write_mark(self, student_id: str, subject_id: str, ta: Any = UNCHANGED, ce: Any = UNCHANGED) -> StudentWriteResponse:
        student = await self.get_student(student_id)
        subject = await self.get_subject(subject_id)

        mark = apply_mark_update(subject, student.marks.get(subject_id), ta=ta, ce=ce)
        subjects = await self.cache.subjects()
        updated = with_marks(student, {**student.marks, subject_id: mark}, subjects)

        await self.store.update(STUDENTS, student_id, marks_payload(updated))
        self.cache.invalidate()
        logger.info(
            f"[MARKS] {student_id}/{subject.name}: total={mark.total:g} status={mark.status.value}, "
            f"grand total={updated.grand_total:g}"
        )

        return await self._reranked(student_id, [student.class_name])

    async def clear_student_subject_marks(self, student_id: str, subject_id: str) -> StudentWriteResponse:
        """Remove one subject's marks from a student."""
        student = await self.get_student(student_id)
        if subject_id not in student.marks:
            return StudentWriteResponse(**student.model_dump())

        remaining = {sid: mark for sid, mark in student.marks.items() if sid != subject_id}
        updated = with_marks(student, remaining, await self.cache.subjects())
        await self.store.update(STUDENTS, student_id, marks_payload(updated))
        self.cache.invalidate()

        return await self._reranked(student_id, [student.class_name])

    async def clear_subject_marks(
        self,
        subject_id: str,
        student_ids: list[str],
        component: str = "all",
    ) -> BatchResult:
        """Clear a subject's marks (or only its TA / CE) for many students."""
        subject = await self.get_subject(subject_id)
        entry = await self.fresh_snapshot()
        by_id = {s.id: s for s in entry.students}

        mutations = []
        for student_id in student_ids:
            student = by_id.get(student_id)
            if student is None:
                mutations.append(Mutation(kind=MutationKind.UPDATE, collection=STUDENTS, doc_id=student_id))
                continue

            marks = dict(student.marks)
            existing = marks.get(subject_id)
            if component == "all" or existing is None:
                marks.pop(subject_id, None)
            elif component == "ta":
                marks[subject_id] = apply_mark_update(subject, existing, ta=None)
            else:
                marks[subject_id] = apply_mark_update(subject, existing, ce=None)

            updated = with_marks(student, marks, entry.subjects)
            mutations.append(
                Mutation(
                    kind=MutationKind.UPDATE,
                    collection=STUDENTS,
                    doc_id=student_id,
                    data=marks_payload(updated),
                    class_name=student.class_name,
                )
            )

        logger.info(f"[MARKS] Clearing {component} marks of {subject.name} for {len(student_ids)} students")
        return await self.orchestrator.run(mutations, validator=self.marks_validator(entry))

    # ==========================================
    # Maintenance jobs
    # ==========================================

    async def recalculate_all_totals(self) -> BatchResult:
        """Recompute aggregates of every student and re-rank every class."""
        entry = await self.fresh_snapshot()
        mutations = []
        for student in entry.students:
            updated = apply_aggregate(student, entry.subjects)
            if marks_payload(updated) != marks_payload(student):
                mutations.append(
                    Mutation(
                        kind=MutationKind.UPDATE,
                        collection=STUDENTS,
                        doc_id=student.id,
                        data={field: updated.to_document()[field] for field in AGGREGATE_FIELDS},
                        class_name=student.class_name,
                    )
                )

        result = await self.orchestrator.run(mutations)
        all_classes = sorted({s.class_name for s in entry.students})
        remaining = [c for c in all_classes if c not in result.affected_classes]
        result.ranking_failures.extend(await self.orchestrator.rerank(remaining))
        return result

    async def recalculate_all_statuses(self) -> BatchResult:
        """Re-evaluate every stored mark under the current subject configs."""
        entry = await self.fresh_snapshot()
        catalogue = entry.subject_map()

        mutations = []
        for student in entry.students:
            marks = dict(student.marks)
            for subject_id, mark in student.marks.items():
                subject = catalogue.get(subject_id)
                if subject is not None:
                    marks[subject_id] = reevaluate(subject, mark)
            updated = with_marks(student, marks, entry.subjects)
            if marks_payload(updated) != marks_payload(student):
                mutations.append(
                    Mutation(
                        kind=MutationKind.UPDATE,
                        collection=STUDENTS,
                        doc_id=student.id,
                        data=marks_payload(updated),
                        class_name=student.class_name,
                    )
                )

        logger.info(f"[MAINTENANCE] {len(mutations)} students need status recalculation")
        return await self.orchestrator.run(mutations)

    async def recalculate_performance_levels(self) -> BatchResult:
        """Re-apply the tier table to every stored average."""
        entry = await self.fresh_snapshot()
        mutations = []
        for student in entry.students:
            level = performance_level_for(student.average)
            if level != student.performance_level:
                mutations.append(
                    Mutation(
                        kind=MutationKind.UPDATE,
                        collection=STUDENTS,
                        doc_id=student.id,
                        data={"performance_level": level.value},
                        class_name=student.class_name,
                    )
                )
        return await self.orchestrator.run(mutations, affects_totals=False)

    async def normalize_faculty_names(self) -> BatchResult:
        """Rewrite faculty names in Title Case so spelling variants merge."""
        entry = await self.fresh_snapshot()
        mutations = []
        for subject in entry.subjects:
            if not subject.faculty_name:
                continue
            normalized = to_title_case(subject.faculty_name)
            if normalized != subject.faculty_name:
                mutations.append(
                    Mutation(
                        kind=MutationKind.UPDATE,
                        collection=SUBJECTS,
                        doc_id=subject.id,
                        data={"faculty_name": normalized},
                    )
                )
        return await self.orchestrator.run(mutations, affects_totals=False)

    # ==========================================
    # Resets
    # ==========================================

    async def clear_collections(self, *collections: str) -> BatchResult:
        """Delete every document of ``collections`` through the orchestrator."""
        mutations = []
        for collection in collections:
            documents = await self.store.list(collection)
            logger.info(f"[RESET] Clearing {len(documents)} documents from {collection}")
            mutations.extend(
                Mutation(kind=MutationKind.DELETE, collection=collection, doc_id=d["id"]) for d in documents
            )
        return await self.orchestrator.run(mutations, affects_totals=False)

    async def clear_all_students(self) -> BatchResult:
        return await self.clear_collections(STUDENTS)

    async def clear_all_subjects(self) -> BatchResult:
        """Delete every subject. Stored marks of deleted subjects stay on the students."""
        return await self.clear_collections(SUBJECTS)

    async def complete_reset(self) -> BatchResult:
        """Empty the store: students, subjects and supplementary exams."""
        return await self.clear_collections(STUDENTS, SUBJECTS, SUPPLEMENTARY_EXAMS)

"""Tests for the student and course catalogue (F5)."""

import pytest
from structlog.testing import capture_logs

from standing.core.catalogue import (
    Catalogue,
    Course,
    Student,
    load_courses,
    load_students,
)
from standing.utils.validators import ValidationError


class TestLoadStudents:
    """Tests for student CSV parsing."""

    def test_loads_sample(self, data_dir):
        students = load_students(data_dir / "student_information.csv")

        assert [s.student_id for s in students] == ["S001", "S002", "S003", "S004"]
        assert students[0].full_name == "Ada Lovelace"
        assert students[0].year == "Year 2"

    def test_missing_file_is_empty(self, tmp_path):
        with capture_logs() as logs:
            assert load_students(tmp_path / "missing.csv") == []
        assert logs[0]["event"] == "catalogue.not_found"

    def test_short_rows_are_skipped(self, tmp_path):
        path = tmp_path / "students.csv"
        path.write_text(
            "StudentID,FirstName,LastName,Major,Year,Email\n"
            "S001,Ada,Lovelace\n"
            ",No,Id,CS,Year 1,x@example.edu\n"
            "S002,Alan,Turing,Mathematics,Year 1,alan@example.edu\n"
        )

        with capture_logs() as logs:
            students = load_students(path)

        assert [s.student_id for s in students] == ["S002"]
        assert [e["event"] for e in logs].count("catalogue.row_skipped") == 2

    def test_invalid_email_is_kept_with_warning(self, tmp_path):
        path = tmp_path / "students.csv"
        path.write_text(
            "StudentID,FirstName,LastName,Major,Year,Email\n"
            "S001,Ada,Lovelace,CS,Year 2,not-an-email\n"
        )

        with capture_logs() as logs:
            students = load_students(path)

        assert len(students) == 1
        assert any(e["event"] == "catalogue.invalid_email" for e in logs)


class TestLoadCourses:
    """Tests for course CSV parsing."""

    def test_loads_sample(self, data_dir):
        courses = load_courses(data_dir / "course_assessment_information.csv")

        assert [c.course_id for c in courses] == ["CS101", "CS102", "MA101", "EN101"]
        assert courses[1].credits == 4
        assert courses[0].exam_weight == 60

    @pytest.mark.parametrize(
        "row",
        [
            "CS201,Algorithms,three,Sem 1,Dr. X,60,40",
            "CS201,Algorithms,0,Sem 1,Dr. X,60,40",
            "CS201,Algorithms,3,Sem 1,Dr. X,160,40",
            "CS201,Algorithms,3,Sem 1",
        ],
    )
    def test_bad_rows_are_skipped(self, tmp_path, row):
        path = tmp_path / "courses.csv"
        path.write_text(
            "CourseID,CourseName,Credits,Semester,Instructor,ExamWeight,AssignmentWeight\n"
            f"{row}\n"
            "CS101,Programming Fundamentals,3,Sem 1,Dr. Knuth,60,40\n"
        )

        with capture_logs() as logs:
            courses = load_courses(path)

        assert [c.course_id for c in courses] == ["CS101"]
        assert any(e["event"] == "catalogue.row_skipped" for e in logs)

    def test_quoted_fields(self, tmp_path):
        path = tmp_path / "courses.csv"
        path.write_text(
            "CourseID,CourseName,Credits,Semester,Instructor,ExamWeight,AssignmentWeight\n"
            'CS201,"Algorithms, Advanced",3,Sem 1,Dr. X,60,40\n'
        )
        assert load_courses(path)[0].name == "Algorithms, Advanced"


class TestModels:
    """Tests for Student and Course records."""

    def test_course_rejects_non_positive_credits(self):
        with pytest.raises(ValidationError):
            Course("CS101", "Programming", 0)

    def test_course_weights(self):
        course = Course("CS101", "Programming", 3, exam_weight=60, assignment_weight=30)
        assert course.total_weight == 90
        assert course.is_weight_valid is False

    def test_student_requires_id(self):
        with pytest.raises(ValidationError):
            Student(" ", "Ada", "Lovelace")

    def test_full_name_skips_empty_parts(self):
        assert Student("S001", "Ada", "").full_name == "Ada"


class TestCatalogue:
    """Tests for Catalogue lookups."""

    @pytest.fixture
    def catalogue(self, data_dir):
        return Catalogue.from_files(
            data_dir / "student_information.csv",
            data_dir / "course_assessment_information.csv",
        )

    def test_find_is_case_insensitive(self, catalogue):
        assert catalogue.find_student("s002").last_name == "Turing"
        assert catalogue.find_course("ma101").credits == 3

    def test_find_unknown_or_empty_is_none(self, catalogue):
        assert catalogue.find_student("S999") is None
        assert catalogue.find_student("") is None
        assert catalogue.find_course(None) is None

    def test_course_credits(self, catalogue):
        assert catalogue.course_credits() == {"CS101": 3, "CS102": 4, "MA101": 3, "EN101": 2}

    def test_invalid_weights_reported(self, data_dir):
        with capture_logs() as logs:
            catalogue = Catalogue.from_files(
                data_dir / "student_information.csv",
                data_dir / "course_assessment_information.csv",
            )

        assert [c.course_id for c in catalogue.courses_with_invalid_weights()] == ["EN101"]
        warnings = [e for e in logs if e["event"] == "catalogue.invalid_weights"]
        assert len(warnings) == 1
        assert warnings[0]["total"] == 90

"""Tests for the recovery plan repository (F4)."""

import pytest
from structlog.testing import capture_logs

from standing.core.recovery_plan import Milestone, RecoveryPlan
from standing.core.recovery_repository import RecoveryPlanRepository, serialize_plan
from standing.utils.validators import StorageError, ValidationError


@pytest.fixture
def plans_path(tmp_path):
    return tmp_path / "recovery_plans.txt"


@pytest.fixture
def repo(plans_path):
    return RecoveryPlanRepository(plans_path)


def _plan(student_id="S001", course_id="CS101", *titles, done=()):
    plan = RecoveryPlan(student_id, course_id)
    for index, title in enumerate(titles):
        plan.add_milestone(Milestone(title, f"Week {index + 1}", completed=index in done))
    return plan


class TestSerialization:
    """Tests for the block format."""

    def test_block_lines(self):
        plan = _plan("S001", "CS101", "Revise notes", "Resubmit", done=(0,))

        assert serialize_plan(plan) == [
            "PLAN|S001|CS101",
            "MILESTONE|Revise notes|Week 1|true",
            "MILESTONE|Resubmit|Week 2|false",
        ]

    def test_delimiters_in_text_are_replaced(self, repo):
        """A pipe in a title never corrupts the ledger."""
        plan = RecoveryPlan("S001", "CS101", [Milestone("Read ch. 3 | 4", "Week\n2")])

        repo.save(plan)
        loaded = repo.load("S001", "CS101")

        assert len(loaded.milestones) == 1
        assert loaded.milestones[0].title == "Read ch. 3   4"
        assert loaded.milestones[0].deadline == "Week 2"


class TestSaveAndLoad:
    """Tests for save and load."""

    def test_save_then_load(self, repo, plans_path):
        plan = _plan("S001", "CS101", "Revise notes", "Resubmit", "Mock exam", done=(1,))

        assert repo.save(plan) == plans_path
        loaded = repo.load("S001", "CS101")

        assert loaded == plan
        assert loaded.completed is False

    def test_load_missing_plan_is_none(self, repo):
        assert repo.load("S001", "CS101") is None
        assert repo.exists("S001", "CS101") is False

    def test_load_is_case_insensitive(self, repo):
        repo.save(_plan("S001", "CS101", "Revise notes"))
        assert repo.load("s001", "cs101") is not None

    def test_load_requires_exact_pair(self, repo):
        repo.save(_plan("S001", "CS101", "Revise notes"))

        assert repo.load("S001", "CS102") is None
        assert repo.load("S002", "CS101") is None

    def test_save_replaces_existing_block(self, repo, plans_path):
        repo.save(_plan("S001", "CS101", "Old task"))
        repo.save(_plan("S002", "MA101", "Other student"))

        repo.save(_plan("S001", "CS101", "New task", "Second task"))

        text = plans_path.read_text()
        assert "Old task" not in text
        assert text.count("PLAN|S001|CS101") == 1
        assert [m.title for m in repo.load("S001", "CS101").milestones] == ["New task", "Second task"]
        assert [m.title for m in repo.load("S002", "MA101").milestones] == ["Other student"]

    def test_save_keeps_other_blocks_intact(self, repo, plans_path):
        repo.save(_plan("S002", "MA101", "Keep me", done=(0,)))
        before = plans_path.read_text()

        repo.save(_plan("S001", "CS101", "Added"))

        assert plans_path.read_text().startswith(before)

    def test_empty_plan_round_trips(self, repo):
        repo.save(RecoveryPlan("S001", "CS101"))

        loaded = repo.load("S001", "CS101")

        assert loaded.milestones == []
        assert loaded.completed is False

    def test_completed_flag_is_derived_on_load(self, repo):
        repo.save(_plan("S001", "CS101", "Only task", done=(0,)))
        assert repo.load("S001", "CS101").completed is True

    def test_list_plans(self, repo):
        repo.save(_plan("S001", "CS101", "A"))
        repo.save(_plan("S002", "CS101", "B"))
        repo.save(_plan("S001", "MA101", "C"))

        plans = repo.list_plans("s001")

        assert [p.course_id for p in plans] == ["CS101", "MA101"]

    def test_load_rejects_empty_ids(self, repo):
        with pytest.raises(ValidationError):
            repo.load("", "CS101")

    def test_write_failure_raises(self, tmp_path):
        (tmp_path / "blocked").write_text("")
        repo = RecoveryPlanRepository(tmp_path / "blocked" / "plans.txt")

        with pytest.raises(StorageError):
            repo.save(_plan("S001", "CS101", "A"))


class TestMalformedLedger:
    """Malformed lines are skipped; the rest of the ledger still loads."""

    def test_skips_bad_lines(self, repo, plans_path):
        plans_path.write_text(
            "\n".join(
                [
                    "MILESTONE|Orphan|Week 0|false",
                    "PLAN|S001|CS101",
                    "MILESTONE|Good|Week 1|yes",
                    "MILESTONE|Too|many|fields|true",
                    "MILESTONE|Bad flag|Week 2|maybe",
                    "NOTE|something",
                    "",
                    "MILESTONE|Also good|Week 3|NO",
                ]
            )
            + "\n"
        )

        with capture_logs() as logs:
            plan = repo.load("S001", "CS101")

        assert [(m.title, m.completed) for m in plan.milestones] == [
            ("Good", True),
            ("Also good", False),
        ]
        skipped = [e for e in logs if e["event"] == "ledger.line_skipped"]
        assert len(skipped) == 4

    def test_save_preserves_unrelated_lines(self, repo, plans_path):
        plans_path.write_text("PLAN|S002|MA101\nMILESTONE|Keep|Week 1|false\n")

        repo.save(_plan("S001", "CS101", "New"))

        assert repo.load("S002", "MA101").milestones[0].title == "Keep"
        assert repo.load("S001", "CS101").milestones[0].title == "New"

    @pytest.mark.parametrize("bad_header", ["PLAN||MA101", "PLAN|S002", "PLAN|S002|MA101|extra"])
    def test_milestones_under_bad_header_are_not_adopted(self, repo, plans_path, bad_header):
        """A broken PLAN header never hands its milestones to the plan above it."""
        plans_path.write_text(
            "PLAN|S001|CS101\n"
            "MILESTONE|Mine|Week 1|true\n"
            f"{bad_header}\n"
            "MILESTONE|Not mine|Week 2|false\n"
        )

        with capture_logs() as logs:
            plan = repo.load("S001", "CS101")

        assert [m.title for m in plan.milestones] == ["Mine"]
        assert plan.completed is True
        assert len([e for e in logs if e["event"] == "ledger.line_skipped"]) == 2

    def test_save_keeps_lines_under_bad_header(self, repo, plans_path):
        """Saving the plan above a broken header leaves the broken block on disk."""
        plans_path.write_text(
            "PLAN|S001|CS101\n"
            "MILESTONE|Mine|Week 1|false\n"
            "PLAN||MA101\n"
            "MILESTONE|Not mine|Week 2|false\n"
        )

        repo.save(_plan("S001", "CS101", "Mine", "Also mine"))

        text = plans_path.read_text()
        assert "PLAN||MA101\nMILESTONE|Not mine|Week 2|false\n" in text
        assert [m.title for m in repo.load("S001", "CS101").milestones] == ["Mine", "Also mine"]

"""CLI commands for the academic standing system.

Commands:
- grade-add: Record (or overwrite) a grade attempt
- grades: Show a student's attempts or current grades
- check: Eligibility decision for one student
- report: Eligibility table for every student
- register: Register an eligible student for the next level
- plan-show / plan-add / plan-done / plan-remove: Recovery plans
- courses-check: Report courses whose assessment weights do not add up to 100

Environment:
- STANDING_DATA_DIR: data directory (default: ./data)
- STANDING_OPERATOR / STANDING_ROLE: who is acting (default: system / ADMIN)
"""

from __future__ import annotations

import os
from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from standing.core.access import SYSTEM_OPERATOR, Operator
from standing.core.eligibility import EligibilityStatus
from standing.core.progression import ProgressionContext, ProgressionService
from standing.core.recovery_plan import Milestone, RecoveryPlan, progress
from standing.utils.validators import StandingError

app = typer.Typer(
    name="standing",
    help="Grade ledger, progression eligibility, registration and recovery plans.",
    no_args_is_help=True,
)

console = Console()

OPERATOR_ENV = "STANDING_OPERATOR"
ROLE_ENV = "STANDING_ROLE"

STATUS_COLORS = {
    EligibilityStatus.ELIGIBLE: "green",
    EligibilityStatus.NOT_ELIGIBLE: "red",
    EligibilityStatus.PENDING_RESULTS: "yellow",
}


def _operator_from_env() -> Operator:
    username = os.environ.get(OPERATOR_ENV)
    if not username:
        return SYSTEM_OPERATOR
    return Operator(username=username, role=os.environ.get(ROLE_ENV, "OFFICER"))


def _service_or_exit() -> ProgressionService:
    """Build the service from the environment, or exit with the error."""
    try:
        context = ProgressionContext.from_environment(operator=_operator_from_env())
        return ProgressionService(context)
    except StandingError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


def _fail(error: Exception) -> NoReturn:
    console.print(f"[red]✗ {escape(str(error))}[/red]")
    raise typer.Exit(code=1)


def _format_cgpa(cgpa: float | None) -> str:
    return "—" if cgpa is None else f"{cgpa:.2f}"


def _print_plan(plan: RecoveryPlan) -> None:
    state = "[green]completed[/green]" if plan.completed else "[yellow]in progress[/yellow]"
    console.print(
        f"\n[bold]Recovery plan {escape(plan.student_id)}/{escape(plan.course_id)}[/bold]"
        f"  {progress(plan)}% {state}\n"
    )
    if not plan.milestones:
        console.print("  [dim]No milestones yet[/dim]")
        return
    for number, milestone in enumerate(plan.milestones, start=1):
        mark = "[green]✓[/green]" if milestone.completed else "[dim]·[/dim]"
        console.print(
            f"  {number}. {mark} {escape(milestone.title)} "
            f"[dim]({escape(milestone.deadline)})[/dim]"
        )


# =============================================================================
# GRADES
# =============================================================================


@app.command(name="grade-add")
def grade_add(
    student_id: str = typer.Argument(..., help="Student ID (e.g., 'S001')"),
    course_id: str = typer.Argument(..., help="Course ID (e.g., 'CS101')"),
    attempt: int = typer.Option(1, "--attempt", "-a", help="Attempt number (1-3)"),
    letter: str = typer.Option(..., "--grade", "-g", help="Letter grade (A, A-, B+, B, C+, C, D, F)"),
) -> None:
    """Record a grade attempt, replacing an existing one with the same attempt number."""
    service = _service_or_exit()
    try:
        grade = service.record_grade(student_id, course_id, attempt, letter)
    except StandingError as e:
        _fail(e)

    console.print(
        f"[green]✓ {escape(grade.student_id)} {escape(grade.course_id)} attempt {grade.attempt}: "
        f"{grade.letter} ({grade.grade_point:.1f})[/green]"
    )


@app.command()
def grades(
    student_id: str = typer.Argument(..., help="Student ID"),
    all_attempts: bool = typer.Option(
        False, "--all", help="Show every attempt instead of the current grade per course"
    ),
) -> None:
    """Show a student's grades."""
    service = _service_or_exit()
    if all_attempts:
        rows = service.grades.by_student(student_id)
    else:
        rows = list(service.grades.latest_attempt_per_course(student_id).values())

    if not rows:
        console.print(f"[yellow]No grades recorded for {escape(student_id)}[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Course")
    table.add_column("Attempt", justify="right")
    table.add_column("Grade")
    table.add_column("Points", justify="right")
    for grade in rows:
        table.add_row(escape(grade.course_id), str(grade.attempt), grade.letter, f"{grade.grade_point:.1f}")
    console.print(table)


# =============================================================================
# ELIGIBILITY & REGISTRATION
# =============================================================================


@app.command()
def check(
    student_id: str = typer.Argument(..., help="Student ID"),
) -> None:
    """Check whether a student may progress to the next level."""
    service = _service_or_exit()
    decision = service.evaluate(student_id)
    if decision is None:
        console.print(f"[red]✗ Unknown student '{escape(student_id)}'[/red]")
        raise typer.Exit(code=1)

    color = STATUS_COLORS[decision.status]
    console.print(f"\n[bold]{escape(decision.student_id)}[/bold]")
    console.print(f"  [dim]status:[/dim] [{color}]{decision.status.value}[/{color}]")
    console.print(f"  [dim]cgpa:[/dim]   {_format_cgpa(decision.cgpa)}")
    console.print(f"  [dim]failed:[/dim] {decision.failed_courses}")
    console.print(f"  [dim]reason:[/dim] {escape(decision.reason)}")
    for course_id in decision.unresolved_courses:
        console.print(f"  [yellow]• no credit hours for {escape(course_id)}[/yellow]")


@app.command()
def report() -> None:
    """Eligibility table for every student in the catalogue."""
    service = _service_or_exit()
    rows = service.evaluate_all()
    if not rows:
        console.print("[yellow]No students in the catalogue[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Student")
    table.add_column("Name")
    table.add_column("CGPA", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Status")
    table.add_column("Registered")
    for row in rows:
        color = STATUS_COLORS[row.decision.status]
        table.add_row(
            escape(row.student.student_id),
            escape(row.student.full_name),
            _format_cgpa(row.decision.cgpa),
            str(row.decision.failed_courses),
            f"[{color}]{row.decision.status.value}[/{color}]",
            "YES" if row.registered else "NO",
        )
    console.print(table)


@app.command()
def register(
    student_id: str = typer.Argument(..., help="Student ID"),
) -> None:
    """Register a student for the next level (only if eligible)."""
    service = _service_or_exit()
    try:
        result = service.register(student_id)
    except StandingError as e:
        _fail(e)

    if not result.success:
        console.print(f"[red]✗ {escape(result.message)}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ {escape(result.message)}[/green]")
    console.print(f"  [dim]registered at:[/dim] {escape(result.row.registered_at)}")


# =============================================================================
# RECOVERY PLANS
# =============================================================================


@app.command(name="plan-show")
def plan_show(
    student_id: str = typer.Argument(..., help="Student ID"),
    course_id: str = typer.Argument(..., help="Course ID"),
) -> None:
    """Show a recovery plan and its progress."""
    service = _service_or_exit()
    try:
        plan = service.load_plan(student_id, course_id)
    except StandingError as e:
        _fail(e)

    if plan is None:
        console.print(
            f"[yellow]No recovery plan for {escape(student_id)}/{escape(course_id)}[/yellow]"
        )
        raise typer.Exit(code=1)
    _print_plan(plan)


@app.command(name="plan-add")
def plan_add(
    student_id: str = typer.Argument(..., help="Student ID"),
    course_id: str = typer.Argument(..., help="Course ID"),
    title: str = typer.Option(..., "--title", "-t", help="Milestone title"),
    deadline: str = typer.Option(..., "--deadline", "-d", help="Deadline (e.g., 'Week 2')"),
    done: bool = typer.Option(False, "--done", help="Mark the milestone as completed"),
) -> None:
    """Add a milestone, creating the plan if needed."""
    service = _service_or_exit()
    try:
        plan = service.open_plan(student_id, course_id)
        plan.add_milestone(Milestone(title=title, deadline=deadline, completed=done))
        service.save_plan(plan)
    except StandingError as e:
        _fail(e)
    _print_plan(plan)


@app.command(name="plan-done")
def plan_done(
    student_id: str = typer.Argument(..., help="Student ID"),
    course_id: str = typer.Argument(..., help="Course ID"),
    number: int = typer.Argument(..., help="Milestone number as shown by plan-show"),
    undo: bool = typer.Option(False, "--undo", help="Mark as pending instead"),
) -> None:
    """Mark a milestone as completed (or pending with --undo)."""
    service = _service_or_exit()
    try:
        plan = service.load_plan(student_id, course_id)
        if plan is None:
            console.print(
                f"[yellow]No recovery plan for {escape(student_id)}/{escape(course_id)}[/yellow]"
            )
            raise typer.Exit(code=1)
        plan.update_milestone_status(number - 1, not undo)
        service.save_plan(plan)
    except StandingError as e:
        _fail(e)
    _print_plan(plan)


@app.command(name="plan-remove")
def plan_remove(
    student_id: str = typer.Argument(..., help="Student ID"),
    course_id: str = typer.Argument(..., help="Course ID"),
    number: int = typer.Argument(..., help="Milestone number as shown by plan-show"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Remove a milestone from a recovery plan."""
    service = _service_or_exit()
    try:
        plan = service.load_plan(student_id, course_id)
        if plan is None:
            console.print(
                f"[yellow]No recovery plan for {escape(student_id)}/{escape(course_id)}[/yellow]"
            )
            raise typer.Exit(code=1)
        if not yes and not typer.confirm(f"Remove milestone {number}?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(code=0)
        plan.remove_milestone(number - 1)
        service.save_plan(plan)
    except StandingError as e:
        _fail(e)
    _print_plan(plan)


# =============================================================================
# CATALOGUE
# =============================================================================


@app.command(name="courses-check")
def courses_check() -> None:
    """Report courses whose exam and assignment weights do not add up to 100."""
    service = _service_or_exit()
    invalid = service.catalogue.courses_with_invalid_weights()
    if not invalid:
        console.print(f"[green]✓ All {len(service.catalogue.courses)} courses have valid weights[/green]")
        return

    console.print(f"[yellow]⚠ {len(invalid)} course(s) with invalid weights:[/yellow]")
    for course in invalid:
        console.print(
            f"  • {escape(course.course_id)} {escape(course.name)}: "
            f"exam {course.exam_weight} + assignment {course.assignment_weight} "
            f"= {course.total_weight}"
        )


if __name__ == "__main__":
    app()

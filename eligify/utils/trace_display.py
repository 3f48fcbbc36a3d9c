"""
Trace display: rich console output for evaluation results.

Renders the verdict, per-rule outcomes and group outcomes so a result
can be inspected without re-deriving evaluation semantics.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..rules.models import EvaluationResult

console = Console()


def _status(passed) -> str:
    if passed is None:
        return "[dim]-[/]"
    return "[green]PASS[/]" if passed else "[red]FAIL[/]"


def _value(value) -> str:
    if value is None:
        return "[dim]null[/]"
    return repr(value)


def build_trace_table(result: EvaluationResult) -> Table:
    """
    Build a table of every trace step.

    Args:
        result: EvaluationResult from CriteriaEvaluator.evaluate()

    Returns:
        rich Table with one row per step
    """
    table = Table(title=f"Trace: {result.criteria}", show_header=True, header_style="bold")
    table.add_column("Stage", style="dim")
    table.add_column("Target", style="cyan")
    table.add_column("Condition")
    table.add_column("Actual")
    table.add_column("Status", justify="center")
    table.add_column("Reason")
    table.add_column("ms", justify="right")

    for step in result.trace:
        if step.stage == "rule":
            condition = f"{step.field} {step.operator} {_value(step.expected)}"
            actual = _value(step.actual)
        else:
            condition = step.message or ""
            actual = ""
        reason = step.reason if step.reason == "OK" else f"[yellow]{step.reason}[/]"
        table.add_row(
            step.stage,
            step.target,
            condition,
            actual,
            _status(step.passed),
            reason,
            f"{step.duration_ms:.3f}",
        )
    return table


def build_group_table(result: EvaluationResult) -> Table:
    """Summary of group outcomes."""
    table = Table(title="Groups", show_header=True, header_style="bold")
    table.add_column("Group", style="cyan")
    table.add_column("Combination")
    table.add_column("Passed", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Status", justify="center")

    for group in result.group_results:
        table.add_row(
            group.name or group.group_id,
            group.combination,
            f"{group.passed_count}/{group.member_count}",
            f"{group.weight:g}",
            _status(group.passed),
        )
    return table


def print_evaluation(result: EvaluationResult, show_trace: bool = True, out: Console = None) -> None:
    """
    Print a verdict panel, group summary and (optionally) the full trace.

    Args:
        result: EvaluationResult to display
        show_trace: Include the per-step table
        out: Console to print to (defaults to module console)
    """
    out = out or console
    status = "[bold green]PASS" if result.passed else "[bold red]FAIL"
    decision = f" | {result.decision}" if result.decision else ""
    out.print(Panel(
        f"{status}[/] {result.criteria}{decision}\n"
        f"[dim]Score: {result.score} | Threshold: {result.threshold} | "
        f"Method: {result.scoring.value} | {result.trace.total_ms:.2f}ms[/]",
        border_style="green" if result.passed else "red",
    ))

    if result.group_results:
        out.print(build_group_table(result))

    if show_trace:
        out.print(build_trace_table(result))

    failed = result.failed_rules
    if failed:
        out.print()
        out.print("[bold red]Failed Rules:[/]")
        for rule in failed:
            detail = f" ({rule.error})" if rule.error else ""
            out.print(f"  [red]- {rule.rule_id}: {rule.field} {rule.operator} {rule.expected!r}{detail}[/]")

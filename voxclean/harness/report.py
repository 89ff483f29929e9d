"""
Pipeline test reports.

Renders the collected category results three ways: a rich console summary,
a Markdown report for CI comments and a standalone HTML page.
"""

from html import escape
from pathlib import Path
from typing import List, Optional, Tuple

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .results import CategoryResult, ResultsStore, ScenarioResult

HTML_REPORT_NAME = "report.html"
MARKDOWN_REPORT_NAME = "report.md"


def _pct(n: int, total: int) -> str:
    if total == 0:
        return "0.0"
    return f"{n / total * 100:.1f}"


def _similarity_line(result: ScenarioResult) -> str:
    return f"{result.similarity * 100:.1f}% (min: {result.min_similarity * 100:.1f}%)"


def _totals(categories: List[CategoryResult]) -> Tuple[int, int, int, str]:
    total = sum(c.total for c in categories)
    passed = sum(c.passed_count for c in categories)
    mode = categories[0].mode if categories else "unknown"
    return total, passed, total - passed, mode


def _failures(categories: List[CategoryResult]) -> List[Tuple[str, ScenarioResult]]:
    return [(c.category, r) for c in categories for r in c.results if not r.passed]


def print_console_report(
    categories: List[CategoryResult],
    console: Optional[Console] = None,
    html_path: Optional[Path] = None,
) -> None:
    """Print the run summary, per-category scores and every failure."""
    console = console or Console()
    total, passed, failed, mode = _totals(categories)

    stats = f"Mode: {mode}  {passed}/{total} passed ({_pct(passed, total)}%)"
    if failed:
        stats += f" · {failed} failed"
    console.print(Panel(
        Text("Pipeline Test Report\n", style="bold") + Text(stats),
        border_style="green" if not failed else "red",
        padding=(0, 2),
    ))

    table = Table(box=box.SIMPLE, show_header=True, header_style="bold white")
    table.add_column("", width=2)
    table.add_column("Category", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    for cat in categories:
        icon = "[green]✓[/green]" if cat.all_passed else "[red]✗[/red]"
        status = "" if cat.all_passed else f"[red]{cat.total - cat.passed_count} failed[/red]"
        table.add_row(icon, cat.category, f"{cat.passed_count}/{cat.total}", status)
    console.print(table)

    failures = _failures(categories)
    if failures:
        console.print(f"  ─── Failures ({len(failures)}) ───", style="bold red")
        for _, result in failures:
            console.print()
            console.print(f"  ✗ {result.id}", style="red", markup=False)
            if result.raw_stt is not None:
                console.print(f"    Raw STT:    {result.raw_stt}", markup=False)
            console.print(f"    Expected:   {result.expected}", markup=False)
            console.print(f"    Actual:     {result.actual}", markup=False)
            console.print(f"    Similarity: {_similarity_line(result)}", markup=False)
            for message in result.failed_assertions:
                console.print(f"    ✗ {message}", style="red", markup=False)

    if html_path is not None:
        console.print()
        console.print(f"  HTML report: {html_path}", markup=False)


def render_markdown(categories: List[CategoryResult]) -> str:
    total, passed, failed, mode = _totals(categories)
    icon = ":white_check_mark:" if failed == 0 else ":x:"

    lines = [
        f"## {icon} Pipeline Test Report",
        "",
        f"**Mode:** {mode} | **Result:** {passed}/{total} passed ({_pct(passed, total)}%)",
        "",
        "| Category | Score | Status |",
        "|----------|-------|--------|",
    ]
    for cat in categories:
        status = ":white_check_mark:" if cat.all_passed else f":x: {cat.total - cat.passed_count} failed"
        lines.append(f"| {cat.category} | {cat.passed_count}/{cat.total} | {status} |")

    failures = _failures(categories)
    if failures:
        lines.append("")
        lines.append("### Failures")
        for category, result in failures:
            lines.append("")
            lines.append(f"<details><summary><b>{result.id}</b> · {category}</summary>")
            lines.append("")
            if result.raw_stt is not None:
                lines.append(f"**Raw STT:** {result.raw_stt}")
                lines.append("")
            lines.append(f"**Expected:** {result.expected}")
            lines.append("")
            lines.append(f"**Actual:** {result.actual}")
            lines.append("")
            lines.append(f"**Similarity:** {_similarity_line(result)}")
            if result.failed_assertions:
                lines.append("")
                for message in result.failed_assertions:
                    lines.append(f"- :x: {message}")
            lines.append("")
            lines.append("</details>")

    lines.append("")
    return "\n".join(lines)


_HTML_STYLE = """
  :root {
    --bg: #ffffff; --fg: #1a1a2e; --muted: #6b7280;
    --card: #f8f9fa; --border: #e5e7eb;
    --pass: #059669; --fail: #dc2626; --fail-bg: #fef2f2;
    --bar-bg: #e5e7eb; --bar-pass: #34d399; --bar-fail: #fca5a5;
    --mono: 'SF Mono', 'Cascadia Code', 'Fira Code', Consolas, monospace;
    --sans: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
  }
  @media (prefers-color-scheme: dark) {
    :root {
      --bg: #0f172a; --fg: #e2e8f0; --muted: #94a3b8;
      --card: #1e293b; --border: #334155;
      --pass: #34d399; --fail: #f87171; --fail-bg: #450a0a;
      --bar-bg: #334155; --bar-pass: #059669; --bar-fail: #dc2626;
    }
  }
  * { margin: 0; padding: 0; box-sizing: border-box; }
  body { font-family: var(--sans); background: var(--bg); color: var(--fg); padding: 2rem; max-width: 960px; margin: 0 auto; }
  h1 { font-size: 1.5rem; margin-bottom: 0.25rem; }
  h2 { font-size: 1.1rem; margin-bottom: 0.75rem; border-bottom: 1px solid var(--border); padding-bottom: 0.5rem; }
  .meta { color: var(--muted); font-size: 0.875rem; margin-bottom: 1.5rem; display: flex; gap: 1.5rem; }
  .summary-grid { display: grid; grid-template-columns: repeat(3, 1fr); gap: 1rem; margin-bottom: 2rem; }
  .stat-card { background: var(--card); border: 1px solid var(--border); border-radius: 8px; padding: 1rem; text-align: center; }
  .stat-value { font-size: 1.75rem; font-weight: 700; }
  .stat-value.pass { color: var(--pass); }
  .stat-value.fail { color: var(--fail); }
  .stat-label { color: var(--muted); font-size: 0.8rem; text-transform: uppercase; }
  table { width: 100%; border-collapse: collapse; margin-bottom: 2rem; }
  th, td { text-align: left; padding: 0.5rem 0.75rem; border-bottom: 1px solid var(--border); }
  .cat-bar { width: 40%; }
  .bar-bg { background: var(--bar-bg); border-radius: 4px; height: 8px; overflow: hidden; }
  .bar-fill { height: 100%; }
  .bar-pass { background: var(--bar-pass); }
  .bar-fail { background: var(--bar-fail); }
  tr.pass .cat-status { color: var(--pass); }
  tr.fail .cat-status { color: var(--fail); }
  .failure-card { background: var(--fail-bg); border: 1px solid var(--fail); border-radius: 8px; padding: 1rem; margin-bottom: 1rem; }
  .failure-card h3 { font-size: 0.95rem; color: var(--fail); margin-bottom: 0.5rem; }
  .failure-card .desc { color: var(--muted); font-size: 0.8rem; margin-bottom: 0.75rem; }
  .failure-detail { font-family: var(--mono); font-size: 0.8rem; line-height: 1.6; }
  .failure-detail dt { color: var(--muted); display: inline; }
  .failure-detail dd { display: inline; }
  .assertion-fail { color: var(--fail); margin-top: 0.25rem; }
  .pass-table td { font-family: var(--mono); font-size: 0.8rem; }
"""


def _category_row(cat: CategoryResult) -> str:
    bar_pct = cat.passed_count / cat.total * 100 if cat.total else 100
    state = "pass" if cat.all_passed else "fail"
    status = "✓" if cat.all_passed else f"{cat.total - cat.passed_count} failed"
    return (
        f'<tr class="{state}">'
        f'<td class="cat-name">{escape(cat.category)}</td>'
        f'<td class="cat-count">{cat.passed_count}/{cat.total}</td>'
        f'<td class="cat-bar"><div class="bar-bg"><div class="bar-fill bar-{state}" style="width:{bar_pct:.1f}%"></div></div></td>'
        f'<td class="cat-status">{status}</td>'
        "</tr>"
    )


def _failure_card(result: ScenarioResult, category: str) -> str:
    rows = []
    if result.raw_stt is not None:
        rows.append(f'<div class="row"><dt>Raw STT: </dt><dd>{escape(result.raw_stt)}</dd></div>')
    rows.append(f'<div class="row"><dt>Expected: </dt><dd>{escape(result.expected)}</dd></div>')
    rows.append(f'<div class="row"><dt>Actual: </dt><dd>{escape(result.actual)}</dd></div>')
    rows.append(f'<div class="row"><dt>Similarity: </dt><dd>{_similarity_line(result)}</dd></div>')
    rows.extend(f'<div class="assertion-fail">✗ {escape(message)}</div>' for message in result.failed_assertions)

    return (
        '<div class="failure-card">\n'
        f"  <h3>{escape(result.id)}</h3>\n"
        f'  <div class="desc">{escape(category)} · {escape(result.description)}</div>\n'
        '  <div class="failure-detail">\n    ' + "\n    ".join(rows) + "\n  </div>\n"
        "</div>"
    )


def render_html(categories: List[CategoryResult]) -> str:
    """Standalone HTML report. All scenario text is escaped."""
    total, passed, failed, mode = _totals(categories)
    timestamp = categories[0].timestamp if categories else ""
    shown_time = timestamp.replace("T", " ")[:19]

    category_rows = "\n".join(_category_row(cat) for cat in categories)
    failure_cards = "\n".join(_failure_card(result, category) for category, result in _failures(categories))
    pass_rows = "\n".join(
        f"<tr><td>{escape(r.id)}</td><td>{r.similarity * 100:.1f}%</td><td>{r.min_similarity * 100:.1f}%</td></tr>"
        for cat in categories for r in cat.results if r.passed
    )

    if failure_cards:
        failures_section = f"<h2>Failures</h2>\n{failure_cards}"
    else:
        failures_section = '<p style="color:var(--pass);font-weight:600;">All scenarios passed!</p>'

    passed_section = ""
    if pass_rows:
        passed_section = (
            f"<details>\n<summary>Passed Scenarios ({passed})</summary>\n"
            '<table class="pass-table">\n'
            "<thead><tr><th>Scenario</th><th>Similarity</th><th>Min Required</th></tr></thead>\n"
            f"<tbody>\n{pass_rows}\n</tbody>\n</table>\n</details>"
        )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Pipeline Test Report</title>
<style>{_HTML_STYLE}</style>
</head>
<body>
  <h1>Pipeline Test Report</h1>
  <div class="meta">
    <span>Mode: <strong>{escape(mode)}</strong></span>
    <span>{escape(shown_time)} UTC</span>
  </div>

  <div class="summary-grid">
    <div class="stat-card"><div class="stat-value">{total}</div><div class="stat-label">Total</div></div>
    <div class="stat-card"><div class="stat-value pass">{passed}</div><div class="stat-label">Passed</div></div>
    <div class="stat-card"><div class="stat-value{' fail' if failed else ''}">{failed}</div><div class="stat-label">Failed</div></div>
  </div>

  <h2>Categories</h2>
  <table>
    <thead><tr><th>Category</th><th>Score</th><th>Progress</th><th>Status</th></tr></thead>
    <tbody>
{category_rows}
    </tbody>
  </table>

{failures_section}

{passed_section}
</body>
</html>
"""


def write_reports(store: ResultsStore, console: Optional[Console] = None) -> Optional[Path]:
    """
    Print the console report and write ``report.html`` and ``report.md``.

    Returns:
        Path of the HTML report, or None when there are no results.
    """
    categories = store.read_all()
    if not categories:
        return None

    html_path = store.results_dir / HTML_REPORT_NAME
    print_console_report(categories, console=console, html_path=html_path)

    html_path.write_text(render_html(categories), encoding="utf-8")
    (store.results_dir / MARKDOWN_REPORT_NAME).write_text(render_markdown(categories), encoding="utf-8")
    return html_path

"""
Report renderer: summarize time entries and render them as text, Markdown, CSV, JSON or HTML.
HTML is rendered with Jinja2 from report/templates/time_report.html.j2.
"""

from typing import Any, Dict, List, Optional
import csv
import io
import json
import os

from jinja2 import Environment, FileSystemLoader, select_autoescape

from normalize.models import TimeEntry

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), 'templates')
CSV_HEADER = ['id', 'spent_on', 'hours', 'user', 'project', 'activity', 'issue_id', 'comments']


def _name(ident: Any) -> str:
    return ident.name if ident is not None else ''


def _add(totals: Dict[str, float], key: str, hours: float):
    totals[key] = round(totals.get(key, 0.0) + hours, 2)


def summarize(entries: List[TimeEntry]) -> Dict[str, Any]:
    """Total hours overall and per project, activity, user and day."""
    summary: Dict[str, Any] = {'total_hours': 0.0, 'entries': len(entries), 'by_project': {}, 'by_activity': {}, 'by_user': {}, 'by_day': {}}
    total = 0.0
    for e in entries:
        total += e.hours
        _add(summary['by_project'], _name(e.project) or '(none)', e.hours)
        _add(summary['by_activity'], _name(e.activity) or '(none)', e.hours)
        _add(summary['by_user'], _name(e.user) or '(none)', e.hours)
        _add(summary['by_day'], e.spent_on or '(unknown)', e.hours)
    summary['total_hours'] = round(total, 2)
    summary['by_day'] = dict(sorted(summary['by_day'].items()))
    return summary


def _sorted_entries(entries: List[TimeEntry]) -> List[TimeEntry]:
    return sorted(entries, key=lambda e: (e.spent_on or '', e.id))


def render_text(entries: List[TimeEntry], summary: Dict[str, Any]) -> str:
    lines = [f"Total: {summary['total_hours']:.2f} hours in {summary['entries']} entries"]
    for project, hours in sorted(summary['by_project'].items()):
        lines.append(f"  {project}: {hours:.2f}")
    return "\n".join(lines)


def render_markdown(entries: List[TimeEntry], summary: Dict[str, Any], scope: Optional[str] = None) -> str:
    """Render a Markdown summary followed by one table row per entry."""
    md = ["# Time Report\n"]
    if scope:
        md.append(f"_Scope: {scope}_\n")
    md.append(f"- Total: **{summary['total_hours']:.2f} hours** in {summary['entries']} entries")
    md.append("\n## By project\n")
    for project, hours in sorted(summary['by_project'].items()):
        md.append(f"- {project}: **{hours:.2f}**")
    md.append("\n## By activity\n")
    for activity, hours in sorted(summary['by_activity'].items()):
        md.append(f"- {activity}: **{hours:.2f}**")
    if entries:
        md.append("\n## Entries\n")
        md.append("| Date | Hours | Project | Activity | Issue | Comments |")
        md.append("|---|---|---|---|---|---|")
        for e in _sorted_entries(entries):
            issue = f"#{e.issue_id}" if e.issue_id else ''
            comments = (e.comments or '').replace('|', '\\|')
            md.append(f"| {e.spent_on or ''} | {e.hours:.2f} | {_name(e.project)} | {_name(e.activity)} | {issue} | {comments} |")
    return "\n".join(md)


def render_csv(entries: List[TimeEntry]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADER)
    for e in _sorted_entries(entries):
        writer.writerow([e.id, e.spent_on or '', e.hours, _name(e.user), _name(e.project), _name(e.activity), e.issue_id or '', e.comments or ''])
    return output.getvalue()


def render_json(entries: List[TimeEntry], summary: Dict[str, Any]) -> str:
    return json.dumps({'summary': summary, 'entries': [e.to_dict() for e in _sorted_entries(entries)]}, indent=2)


def render_html(entries: List[TimeEntry], summary: Dict[str, Any], scope: Optional[str] = None, generated_at: Optional[str] = None) -> str:
    env = Environment(loader=FileSystemLoader(TEMPLATE_DIR), autoescape=select_autoescape(['html', 'xml', 'j2']))
    tmpl = env.get_template('time_report.html.j2')
    return tmpl.render(entries=_sorted_entries(entries), summary=summary, scope=scope, generated_at=generated_at)


def render(
    entries: List[TimeEntry],
    fmt: str = 'text',
    scope: Optional[str] = None,
    generated_at: Optional[str] = None,
) -> str:
    """Main render function. Unknown formats fall back to plain text."""
    summary = summarize(entries)
    fmt_l = (fmt or 'text').lower()
    if fmt_l in ('md', 'markdown'):
        return render_markdown(entries, summary, scope)
    if fmt_l == 'csv':
        return render_csv(entries)
    if fmt_l in ('html', 'htm'):
        return render_html(entries, summary, scope, generated_at)
    if fmt_l in ('json', 'js'):
        return render_json(entries, summary)
    return render_text(entries, summary)

"""
CLI entry point for the Redmine client. Wires settings -> session -> accessor -> output.
"""

import argparse
import json
import logging
import os
import sys
import webbrowser
from datetime import datetime, timezone

from redmine_config import ConfigError, load_settings, open_session
from ingest.transport import RedmineError
from normalize.models import IssueUpdate
from report.renderer import render

UPDATE_FLAGS = (
    ("subject", str),
    ("description", str),
    ("status_id", int),
    ("priority_id", int),
    ("assigned_to_id", int),
    ("done_ratio", int),
    ("notes", str),
)


def _print_json(obj):
    print(json.dumps(obj, indent=2, default=str))


def _open_file_in_browser(path: str):
    """Open a file URL in the system default web browser."""
    webbrowser.open("file://" + os.path.abspath(path))


def write_output(rendered: str, args):
    """Write output to --out-file when given, otherwise to stdout."""
    out_path = (args.out_file or "").strip()
    if not out_path:
        print(rendered)
        return
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    # newline='' is safe for CSV on Windows and harmless for other formats
    with open(out_path, "w", encoding="utf-8", newline="") as f:
        f.write(rendered)
    print(f"Wrote report to {out_path}")
    if args.open and out_path.lower().endswith((".html", ".htm")):
        try:
            _open_file_in_browser(out_path)
        except webbrowser.Error:
            print("Failed to open browser automatically; file saved at", out_path)


def _resolve_settings(args, parser):
    """Merge --config file, environment and CLI flags. Calls parser.error() when nothing usable is configured."""
    try:
        settings = load_settings(path=args.config or None, url=args.url, api_key=args.api_key, username=args.username, password=args.password)
    except ConfigError as e:
        parser.error(str(e))
    missing = []
    if not settings.url:
        missing.append("url (CLI flag --url or env REDMINE_URL)")
    if not settings.api_key and not (settings.username and settings.password):
        missing.append("credentials (--api-key / env REDMINE_API_KEY, or --username and --password)")
    if missing:
        parser.error("Missing required settings: " + ", ".join(missing))
    return settings


def _emit_records(records):
    if isinstance(records, list):
        _print_json([r.to_dict() for r in records])
    else:
        _print_json(records.to_dict())


def _build_update(args) -> IssueUpdate:
    update = IssueUpdate()
    for name, _ in UPDATE_FLAGS:
        value = getattr(args, name, None)
        if value is not None:
            update.set(name, value)
    return update


def cmd_whoami(session, args):
    _emit_records(session.get_current_user())


def cmd_issues(session, args):
    _emit_records(session.list_watched_issues())


def cmd_issue(session, args):
    issue = session.get_issue(args.issue_id)
    _emit_records(issue)


def cmd_update_issue(session, args):
    update = _build_update(args)
    if not len(update):
        print("Nothing to update; pass at least one field flag.")
        return
    session.update_issue(args.issue_id, update)
    print(f"Updated {session.issue_url(args.issue_id)} ({', '.join(sorted(update.to_payload()))})")


def cmd_projects(session, args):
    _emit_records(session.list_projects())


def cmd_statuses(session, args):
    _emit_records(session.list_issue_statuses())


def cmd_time_entries(session, args):
    params = session.build_time_entry_params(args.user_id, args.project_id, args.days)
    entries = session.list_time_entries(params)
    scope = params["spent_on"][2:].replace("|", " to ")
    rendered = render(entries, fmt=args.output, scope=scope, generated_at=datetime.now(timezone.utc).isoformat())
    write_output(rendered, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Redmine REST API client")
    parser.add_argument("--url", type=str, default="", help="Redmine base URL (or env REDMINE_URL)")
    parser.add_argument("--api-key", type=str, default="", help="API key (or env REDMINE_API_KEY)")
    parser.add_argument("--username", type=str, default="", help="Username, exchanged for the API key (or env REDMINE_USERNAME)")
    parser.add_argument("--password", type=str, default="", help="Password (or env REDMINE_PASSWORD)")
    parser.add_argument("--config", type=str, default="", help="YAML settings file (default: $REDMINE_CONFIG or ~/.redmine.yaml)")
    parser.add_argument("--output", type=str, default="text", help="Time report format (text, md, csv, json, html)")
    parser.add_argument("--out-file", type=str, default="", help="Write the time report to this path instead of stdout")
    parser.add_argument("--open", action="store_true", help="Open an HTML report in the default browser")
    parser.add_argument("--verbose", action="store_true", help="Log HTTP requests (secrets are never logged)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("whoami", help="Show the authenticated user").set_defaults(func=cmd_whoami)
    sub.add_parser("issues", help="List issues you watch").set_defaults(func=cmd_issues)
    sub.add_parser("projects", help="List projects").set_defaults(func=cmd_projects)
    sub.add_parser("statuses", help="List issue statuses").set_defaults(func=cmd_statuses)

    p_issue = sub.add_parser("issue", help="Show one issue")
    p_issue.add_argument("issue_id", type=int)
    p_issue.set_defaults(func=cmd_issue)

    p_update = sub.add_parser("update-issue", help="Update fields of one issue")
    p_update.add_argument("issue_id", type=int)
    for name, kind in UPDATE_FLAGS:
        p_update.add_argument("--" + name.replace("_", "-"), dest=name, type=kind, default=None)
    p_update.set_defaults(func=cmd_update_issue)

    p_time = sub.add_parser("time-entries", help="Report time spent over the last N days")
    p_time.add_argument("--user-id", type=str, default="", help="User id, or 'me'")
    p_time.add_argument("--project-id", type=str, default="", help="Project id or identifier")
    p_time.add_argument("--days", type=int, default=7, help="Days back from today (default: 7)")
    p_time.set_defaults(func=cmd_time_entries)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings = _resolve_settings(args, parser)
    try:
        session = open_session(settings)
        try:
            args.func(session, args)
        finally:
            session.transport.close()
    except (RedmineError, ConfigError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
OceanOS CLI -- sign in and work with marine data submissions from a terminal.

Usage:
  python main.py login researcher@university.edu
  python main.py register new@lab.org --name "Dr. Reef" --role researcher --organization "Reef Lab"
  python main.py whoami
  python main.py submissions list
  python main.py submissions list --pending
  python main.py submissions show SUBMISSION_ID
  python main.py submissions create --title "Reef survey" --data-type observation --data '{"count": 12}'
  python main.py submissions review SUBMISSION_ID --approve --notes "looks good"
  python main.py logout

Environment variables:
  OCEANOS_API_BASE_URL        API root (default: http://localhost:8000/api/v1)
  OCEANOS_TOKEN_FILE          Where tokens are kept (default: ~/.oceanos/tokens.json)
  OCEANOS_CLIENT_ENVIRONMENT  Environment tag sent in X-Provenance (default: development)
"""

import argparse
import getpass
import json
import sys
from typing import Any, Optional

from client.errors import ApiError
from client.session import SessionManager
from client.storage import FileTokenStorage
from core.config import get_client_settings


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2))


def _print_submission_row(sub: dict[str, Any]) -> None:
    print(f"  {sub['id']}  {sub['status']:<9} {sub['dataType']:<12} {sub['title']}")


def _print_submission(sub: dict[str, Any]) -> None:
    print(f"\n{sub['title']}")
    print("─" * 40)
    print(f"  ID:          {sub['id']}")
    print(f"  Status:      {sub['status']}")
    print(f"  Data type:   {sub['dataType']}")
    print(f"  Submitted:   {sub['submittedAt']} by {sub['submittedBy']}")
    if sub.get("reviewedBy"):
        print(f"  Reviewed:    {sub['reviewedAt']} by {sub['reviewedBy']}")
    if sub.get("reviewNotes"):
        print(f"  Notes:       {sub['reviewNotes']}")
    if sub.get("description"):
        print(f"\n  {sub['description']}")
    if sub.get("attachments"):
        print("\n  Attachments:")
        for url in sub["attachments"]:
            print(f"    {url}")
    print()


def _password(args: argparse.Namespace) -> str:
    return args.password if args.password is not None else getpass.getpass("Password: ")


def _parse_data(raw: Optional[str]) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise SystemExit(f"  [!] --data is not valid JSON: {exc}") from None
    if not isinstance(data, dict):
        raise SystemExit("  [!] --data must be a JSON object.")
    return data


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def cmd_login(manager: SessionManager, args: argparse.Namespace) -> None:
    user = manager.login(args.email, _password(args))
    print(f"Signed in as {user['name']} ({user['role']}).")


def cmd_register(manager: SessionManager, args: argparse.Namespace) -> None:
    user = manager.register(args.email, _password(args), args.name, args.role, args.organization)
    print(f"Account created. Signed in as {user['name']} ({user['role']}).")


def cmd_logout(manager: SessionManager, args: argparse.Namespace) -> None:
    manager.logout()
    print("Signed out.")


def cmd_whoami(manager: SessionManager, args: argparse.Namespace) -> None:
    user = manager.me()
    if args.json:
        _print_json(user)
        return
    org = f", {user['organization']}" if user.get("organization") else ""
    print(f"{user['name']} <{user['email']}> ({user['role']}{org})")


def cmd_list(manager: SessionManager, args: argparse.Namespace) -> None:
    subs = manager.list_pending() if args.pending else manager.list_submissions()
    if args.json:
        _print_json(subs)
        return
    if not subs:
        print("No submissions.")
        return
    for sub in subs:
        _print_submission_row(sub)


def cmd_show(manager: SessionManager, args: argparse.Namespace) -> None:
    sub = manager.get_submission(args.id)
    if args.json:
        _print_json(sub)
    else:
        _print_submission(sub)


def cmd_create(manager: SessionManager, args: argparse.Namespace) -> None:
    sub = manager.create_submission(
        title=args.title,
        description=args.description,
        data_type=args.data_type,
        data=_parse_data(args.data),
        attachments=args.attachment or None,
    )
    print(f"Submission {sub['id']} created. Awaiting government approval.")


def cmd_review(manager: SessionManager, args: argparse.Namespace) -> None:
    action = "approve" if args.approve else "reject"
    sub = manager.review_submission(args.id, action, args.notes)
    print(f"Submission {sub['id']} {sub['status']}.")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oceanos",
        description="Command-line client for the OceanOS marine data API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--base-url", metavar="URL", help="API root (overrides OCEANOS_API_BASE_URL)")
    parser.add_argument("--token-file", metavar="PATH", help="Token file (overrides OCEANOS_TOKEN_FILE)")
    parser.add_argument("--json", action="store_true", help="Print raw JSON instead of a summary")
    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    login = commands.add_parser("login", help="Sign in and store tokens")
    login.add_argument("email")
    login.add_argument("--password", help="Password (prompted when omitted)")
    login.set_defaults(handler=cmd_login)

    register = commands.add_parser("register", help="Create an account and sign in")
    register.add_argument("email")
    register.add_argument("--password", help="Password (prompted when omitted)")
    register.add_argument("--name", required=True)
    register.add_argument("--role", required=True, choices=["government", "researcher"])
    register.add_argument("--organization")
    register.set_defaults(handler=cmd_register)

    logout = commands.add_parser("logout", help="Revoke the refresh token and forget local tokens")
    logout.set_defaults(handler=cmd_logout)

    whoami = commands.add_parser("whoami", help="Show the signed-in account")
    whoami.set_defaults(handler=cmd_whoami)

    subs = commands.add_parser("submissions", help="Work with data submissions")
    sub_commands = subs.add_subparsers(dest="subcommand", required=True, metavar="ACTION")

    sub_list = sub_commands.add_parser("list", help="List submissions visible to you")
    sub_list.add_argument("--pending", action="store_true", help="Government review queue only")
    sub_list.set_defaults(handler=cmd_list)

    sub_show = sub_commands.add_parser("show", help="Show one submission")
    sub_show.add_argument("id")
    sub_show.set_defaults(handler=cmd_show)

    sub_create = sub_commands.add_parser("create", help="Submit data for approval")
    sub_create.add_argument("--title", required=True)
    sub_create.add_argument("--description", default="")
    sub_create.add_argument(
        "--data-type",
        required=True,
        choices=["observation", "sensor", "species", "other"],
    )
    sub_create.add_argument("--data", metavar="JSON", help="Payload as a JSON object")
    sub_create.add_argument("--attachment", action="append", metavar="URL", help="Attachment URL (repeatable)")
    sub_create.set_defaults(handler=cmd_create)

    sub_review = sub_commands.add_parser("review", help="Approve or reject a pending submission")
    sub_review.add_argument("id")
    decision = sub_review.add_mutually_exclusive_group(required=True)
    decision.add_argument("--approve", action="store_true")
    decision.add_argument("--reject", action="store_true")
    sub_review.add_argument("--notes")
    sub_review.set_defaults(handler=cmd_review)

    return parser


def main(argv: Optional[list[str]] = None, manager: Optional[SessionManager] = None) -> int:
    args = build_parser().parse_args(argv)
    if manager is None:
        settings = get_client_settings()
        manager = SessionManager(
            args.base_url or settings.api_base_url,
            storage=FileTokenStorage(args.token_file or settings.token_file),
            environment=settings.client_environment,
            timeout=settings.request_timeout,
        )
    try:
        args.handler(manager, args)
    except ApiError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

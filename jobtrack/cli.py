"""Command-line interface for the job application tracker.

Usage:
    jobtrack add "Acme Corp"
    jobtrack list --status pending
    jobtrack stage add --company acme
    jobtrack stage tree
    jobtrack sprint new --name 2026-q4
    jobtrack config show
"""
import argparse
import logging
import os
import subprocess
import sys
from datetime import date
from typing import Optional

from rich.console import Console
from rich.markup import escape

from .common.config import get_config, get_config_path, save_config
from .common.errors import TrackerError
from .applications import shell
from .applications.database import get_engine, get_session, init_db
from .applications.job_service import JobQuery
from .applications.models import Sprint
from .applications.sprint_service import (
    get_or_create_sprint,
    get_sprint_by_name,
    list_sprints,
    start_new_sprint,
)

logger = logging.getLogger(__name__)

EPILOG = """
Examples:
  jobtrack add "Acme Corp"
  jobtrack list --company acme --stages
  jobtrack stage add -c acme
  jobtrack stage delete --sprint 2026-10
  jobtrack insights
"""


def _add_query_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('-c', '--company', help='Filter by company name (partial match)')
    parser.add_argument('-l', '--link', help='Filter by link (partial match)')
    parser.add_argument('-n', '--notes', help='Filter by notes (partial match)')
    parser.add_argument('--sprint', help='Filter by sprint name (partial match), default: current sprint')
    parser.add_argument('-s', '--status', help='Filter by application status (partial match)')
    parser.add_argument('-t', '--title', help='Filter by job title (partial match)')
    parser.add_argument(
        '--stages', type=int, nargs='?', const=0, default=None,
        help='Filter by number of interview stages; without a value, any job that has stages',
    )


def _query_from_args(args: argparse.Namespace) -> JobQuery:
    return JobQuery(
        company=args.company,
        link=args.link,
        notes=args.notes,
        sprint=args.sprint,
        status=args.status,
        title=args.title,
        stages=args.stages,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='jobtrack',
        description='Track job applications, sprints and interview stages',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    add = sub.add_parser('add', help='Track a new job application')
    add.add_argument('company', help='The name of the company')

    for name, help_text in (
        ('list', 'List job applications in the current sprint'),
        ('update', 'Update a tracked job application'),
        ('delete', 'Delete a tracked job application'),
        ('open', 'Open the link or local file of a job application'),
    ):
        _add_query_args(sub.add_parser(name, help=help_text))

    sub.add_parser('insights', help='Show job application counts per status and sprint')

    sprint = sub.add_parser('sprint', help='Manage job sprints')
    sprint_sub = sprint.add_subparsers(dest='sprint_command', required=True)
    sprint_sub.add_parser('current', help='Display the current sprint')
    new = sprint_sub.add_parser('new', help='Start a new sprint')
    new.add_argument('--name', help='Override the default sprint name (YYYY-MM-DD)')
    sprint_sub.add_parser('show-all', help='Show all sprints')
    sprint_sub.add_parser('set', help='Set the current sprint')

    stage = sub.add_parser('stage', help='Manage interview stages of an application')
    stage_sub = stage.add_subparsers(dest='stage_command', required=True)
    for name, help_text in (
        ('add', 'Add an interview stage'),
        ('update', 'Update an interview stage'),
        ('delete', 'Delete an interview stage'),
        ('tree', 'Display the interview stages of an application'),
    ):
        _add_query_args(stage_sub.add_parser(name, help=help_text))

    config = sub.add_parser('config', help='Show or edit the configuration file')
    config_sub = config.add_subparsers(dest='config_command', required=True)
    config_sub.add_parser('show', help='Display the current configuration')
    config_sub.add_parser('edit', help='Open the configuration file in $EDITOR')

    return parser


def resolve_current_sprint(engine) -> Sprint:
    """The sprint named in the config, created (and saved) on first use."""
    config = get_config()
    with get_session(engine) as session:
        sprint = get_or_create_sprint(session, config.sprint.current or _default_sprint_name())
    if config.sprint.current != sprint.name:
        config.sprint.current = sprint.name
        save_config(config)
        logger.info(f"Current sprint set to '{sprint.name}'")
    return sprint


def _default_sprint_name() -> str:
    return date.today().isoformat()


def _set_current_sprint(name: str) -> None:
    config = get_config()
    config.sprint.current = name
    path = save_config(config)
    logger.debug(f"Saved current sprint to {path}")


def run_sprint(args, engine, console: Console, current: Sprint) -> None:
    if args.sprint_command == 'current':
        console.print(f"Current sprint: [bold green]{escape(current.name)}[/bold green]")

    elif args.sprint_command == 'new':
        with get_session(engine) as session:
            previous = get_sprint_by_name(session, current.name)
            sprint = start_new_sprint(session, args.name, previous=previous)
            name = sprint.name
        _set_current_sprint(name)
        console.print(f"[bold green]Started sprint {escape(name)}.[/bold green]")

    elif args.sprint_command == 'show-all':
        with get_session(engine) as session:
            sprints = list_sprints(session)
        shell.display_sprints(console, sprints, current.name)

    elif args.sprint_command == 'set':
        with get_session(engine) as session:
            sprints = list_sprints(session)
        picked = shell.select_one(console, "Select a sprint", sprints)
        if picked is not None:
            _set_current_sprint(picked.name)
            console.print(f"[bold green]Current sprint set to {escape(picked.name)}.[/bold green]")


def run_stage(args, engine, console: Console, current: Sprint) -> None:
    handler = {
        'add': shell.add_stage,
        'update': shell.update_stage,
        'delete': shell.delete_stage,
        'tree': shell.show_stage_tree,
    }[args.stage_command]
    handler(engine, console, _query_from_args(args), current)


def run_config(args, console: Console) -> None:
    path = get_config_path()
    if not path.exists():
        save_config(get_config())
    if args.config_command == 'show':
        console.print(f"[dim]{path}[/dim]")
        console.print(path.read_text(), markup=False, highlight=False)
    else:
        editor = os.getenv('EDITOR', 'vi')
        subprocess.run([editor, str(path)], check=False)


def run(args: argparse.Namespace, console: Console) -> None:
    if args.command == 'config':
        run_config(args, console)
        return

    engine = get_engine()
    try:
        init_db(engine)
        current = resolve_current_sprint(engine)

        if args.command == 'add':
            shell.add_job(engine, console, args.company, current)
        elif args.command == 'list':
            shell.list_jobs(engine, console, _query_from_args(args), current)
        elif args.command == 'update':
            shell.update_job(engine, console, _query_from_args(args), current)
        elif args.command == 'delete':
            shell.delete_job(engine, console, _query_from_args(args), current)
        elif args.command == 'open':
            shell.open_job(engine, console, _query_from_args(args), current)
        elif args.command == 'insights':
            shell.show_insights(engine, console, current)
        elif args.command == 'sprint':
            run_sprint(args, engine, console, current)
        elif args.command == 'stage':
            run_stage(args, engine, console, current)
    finally:
        engine.dispose()


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )
    console = Console()

    try:
        run(args, console)
    except TrackerError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[bold red]{escape(str(e))}[/bold red]")
        return e.exit_code
    except (KeyboardInterrupt, EOFError):
        shell.print_cancelled(console)
        return 130
    return 0


if __name__ == '__main__':
    sys.exit(main())

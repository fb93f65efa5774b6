import sys

from rich.console import Console
from rich.table import Table

from cli.helpers import load_services, print_json, status_style
from infra.batch.schemas import NoPages, PrepareFailed
from infra.jobs.registry import ACTIONS
from infra.jobs.schemas import JobStatus


def _print_job(job):
    progress = job.progress
    print(f"\n📋 Job {job.id}")
    print(f"   Type:     {job.type.value}")
    print(f"   Book:     {job.book_id}")
    print(f"   Status:   {job.status.value}")
    print(f"   Progress: {progress.completed}/{progress.total} done, {progress.failed} failed")
    if job.batch_job_name:
        print(f"   Batch:    {job.batch_job_name}")
    if job.error:
        print(f"   Error:    {job.error}")
    print(f"   Created:  {job.created_at}")
    if job.completed_at:
        print(f"   Finished: {job.completed_at}")
    print()


def cmd_job_list(args):
    services = load_services(args)
    jobs = services.registry.find(book_id=args.book_id, status=args.status, limit=args.limit)

    if args.json:
        print_json([j.model_dump(mode='json') for j in jobs])
        return

    if not jobs:
        print("No jobs.")
        return

    table = Table(title=f"Jobs ({len(jobs)})")
    table.add_column("Job", style="cyan")
    table.add_column("Book")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Done", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Created")

    for job in jobs:
        progress = job.progress
        status = job.status.value
        table.add_row(
            job.id,
            job.book_id,
            job.type.value,
            f"[{status_style(status)}]{status}[/]",
            str(progress.completed),
            str(progress.failed),
            str(progress.total),
            job.created_at[:19],
        )

    Console().print(table)


def cmd_job_show(args):
    job = load_services(args).registry.get(args.job_id)
    if args.json:
        print_json(job.model_dump(mode='json'))
        return
    _print_job(job)

    if args.failures:
        failures = [r for r in job.results if not r.success]
        for result in failures:
            print(f"   ✗ {result.page_id}: {result.error}")


def cmd_job_action(args):
    job = load_services(args).registry.transition(args.job_id, args.action)
    print(f"✓ {args.action}: job {job.id} is now {job.status.value}")
    if args.action == 'retry':
        print(f"   {len(job.pending_page_ids)} pages to resubmit; run 'scriptorium job submit {job.id}'")


def cmd_job_submit(args):
    services = load_services(args)
    outcome = services.submitter.submit_job(args.job_id)

    if isinstance(outcome, NoPages):
        print(f"✓ Job {args.job_id} had no outstanding pages; marked completed")
    elif isinstance(outcome, PrepareFailed):
        print(f"❌ {outcome.message}; job {args.job_id} marked failed")
        sys.exit(1)
    else:
        print(f"🚀 Submitted {outcome.pages_submitted} pages as {outcome.job_name}")


def cmd_job_delete(args):
    services = load_services(args)
    job = services.registry.get(args.job_id)

    if not args.yes:
        try:
            response = input(f"Delete job {job.id} ({job.status.value})? (yes/no): ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            print("\nCancelled.")
            sys.exit(0)
        if response not in ['yes', 'y']:
            print("Cancelled.")
            sys.exit(0)

    services.registry.delete(job.id)
    print(f"🗑️  Deleted job {job.id}")


def setup_job_parser(subparsers):
    job_parser = subparsers.add_parser('job', help='Job registry (list, show, pause/resume/cancel/retry)')
    job_subparsers = job_parser.add_subparsers(dest='job_command', help='Job command')
    job_subparsers.required = True

    list_parser = job_subparsers.add_parser('list', help='List jobs, newest first')
    list_parser.add_argument('--book', dest='book_id', help='Only jobs for this book')
    list_parser.add_argument('--status', choices=[s.value for s in JobStatus], help='Only jobs in this status')
    list_parser.add_argument('--limit', type=int, default=50, help='Maximum rows (default: 50)')
    list_parser.add_argument('--json', action='store_true', help='Output as JSON')
    list_parser.set_defaults(func=cmd_job_list)

    show_parser = job_subparsers.add_parser('show', help='Show one job')
    show_parser.add_argument('job_id', help='Job ID')
    show_parser.add_argument('--failures', action='store_true', help='List failed pages')
    show_parser.add_argument('--json', action='store_true', help='Output as JSON')
    show_parser.set_defaults(func=cmd_job_show)

    action_parser = job_subparsers.add_parser('action', help='Apply a state-machine action')
    action_parser.add_argument('job_id', help='Job ID')
    action_parser.add_argument('action', choices=ACTIONS, help='Action')
    action_parser.set_defaults(func=cmd_job_action)

    submit_parser = job_subparsers.add_parser('submit', help="Submit a pending job's outstanding pages")
    submit_parser.add_argument('job_id', help='Job ID')
    submit_parser.set_defaults(func=cmd_job_submit)

    delete_parser = job_subparsers.add_parser('delete', help='Delete a job record')
    delete_parser.add_argument('job_id', help='Job ID')
    delete_parser.add_argument('-y', '--yes', action='store_true', help='Skip confirmation')
    delete_parser.set_defaults(func=cmd_job_delete)

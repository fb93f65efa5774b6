from rich.console import Console
from rich.table import Table

from cli.helpers import fail, load_services, print_json, status_style
from infra.batch.schemas import BatchJob, BatchType, NoPages, PrepareFailed


def cmd_batch_submit(args):
    services = load_services(args)
    outcome = services.submitter.submit_batch(
        args.book_id,
        args.type,
        limit=args.limit,
        model=args.model,
        language=args.language,
        target_language=args.target_language,
    )

    if isinstance(outcome, NoPages):
        print(f"✓ Nothing to submit: {outcome.message}")
        return
    if isinstance(outcome, PrepareFailed):
        fail(f"{outcome.message} ({outcome.attempted} pages attempted)")

    print(f"🚀 Submitted {outcome.pages_submitted} pages for {args.type}")
    print(f"   Batch: {outcome.job_name}")
    print(f"   Job:   {outcome.job_id}")
    if outcome.skipped:
        print(f"   ⚠️  {len(outcome.skipped)} pages skipped (image unavailable)")


def cmd_batch_poll(args):
    services = load_services(args)
    result = services.reconciler.poll(args.job_name)

    if args.json:
        print_json(result.to_dict())
        return

    print(f"📡 {result.job_name}: {result.status.value}")
    if result.collected:
        print(f"   ✅ Collected {result.success_count} pages ({result.fail_count} failed)")
    elif result.results_collected:
        print(f"   Results already collected ({result.success_count} ok, {result.fail_count} failed)")
    elif result.skipped_reason:
        print(f"   Skipped: {result.skipped_reason}")


def cmd_batch_list(args):
    services = load_services(args)
    filter = {'book_id': args.book_id} if args.book_id else None
    docs = services.library.batch_jobs.find(filter, sort=[('created_at', -1)], limit=args.limit)
    batches = [BatchJob.model_validate(d) for d in docs]

    if args.json:
        print_json([b.model_dump(mode='json') for b in batches])
        return

    if not batches:
        print("No batch jobs.")
        return

    table = Table(title="Batch jobs")
    table.add_column("Batch", style="cyan")
    table.add_column("Book")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Pages", justify="right")
    table.add_column("OK", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Collected")

    for batch in batches:
        status = batch.status.value
        table.add_row(
            batch.job_name,
            batch.book_id,
            batch.type.value,
            f"[{status_style(status)}]{status}[/]",
            str(len(batch.page_ids)),
            str(batch.success_count),
            str(batch.fail_count),
            "✓" if batch.results_collected else "",
        )

    Console().print(table)


def cmd_batch_cancel(args):
    services = load_services(args)
    services.reconciler.cancel_remote(args.job_name)
    print(f"🛑 Cancel requested for {args.job_name}")


def cmd_batch_sync(args):
    services = load_services(args)
    report = services.sync.sync_all(args.book_id)

    if args.json:
        print_json(report.to_dict())
        return

    print(f"🔄 Polled {report.polled}, collected {report.collected}, submitted {report.submitted}")
    for error in report.errors:
        target = error.get('job_name') or error.get('job_id')
        print(f"   ⚠️  {target}: {error.get('error')}")


def setup_batch_parser(subparsers):
    batch_parser = subparsers.add_parser('batch', help='Provider batch jobs (submit, poll, sync)')
    batch_subparsers = batch_parser.add_subparsers(dest='batch_command', help='Batch command')
    batch_subparsers.required = True

    submit_parser = batch_subparsers.add_parser('submit', help='Submit pages needing OCR or translation')
    submit_parser.add_argument('book_id', help='Book ID')
    submit_parser.add_argument('type', choices=[t.value for t in BatchType], help='Work type')
    submit_parser.add_argument('--limit', type=int, help='Maximum pages in the batch')
    submit_parser.add_argument('--model', help='Model (default: from config)')
    submit_parser.add_argument('--language', help='Source language')
    submit_parser.add_argument('--target-language', help='Translation target language')
    submit_parser.set_defaults(func=cmd_batch_submit)

    poll_parser = batch_subparsers.add_parser('poll', help='Poll a batch and collect results when done')
    poll_parser.add_argument('job_name', help='Provider batch name (e.g. batches/abc123)')
    poll_parser.add_argument('--json', action='store_true', help='Output as JSON')
    poll_parser.set_defaults(func=cmd_batch_poll)

    list_parser = batch_subparsers.add_parser('list', help='List recent batch jobs')
    list_parser.add_argument('--book', dest='book_id', help='Only batches for this book')
    list_parser.add_argument('--limit', type=int, default=10, help='Maximum rows (default: 10)')
    list_parser.add_argument('--json', action='store_true', help='Output as JSON')
    list_parser.set_defaults(func=cmd_batch_list)

    cancel_parser = batch_subparsers.add_parser('cancel', help='Cancel a batch at the provider')
    cancel_parser.add_argument('job_name', help='Provider batch name')
    cancel_parser.set_defaults(func=cmd_batch_cancel)

    sync_parser = batch_subparsers.add_parser('sync', help='Poll every live batch and submit pending jobs')
    sync_parser.add_argument('--book', dest='book_id', help='Only this book')
    sync_parser.add_argument('--json', action='store_true', help='Output as JSON')
    sync_parser.set_defaults(func=cmd_batch_sync)

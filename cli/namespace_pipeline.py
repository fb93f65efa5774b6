from rich.console import Console
from rich.table import Table

from cli.helpers import load_services, print_json, status_style
from pipeline.registry import STEP_DEFINITIONS, get_all_step_metadata
from pipeline.schemas import StepName


def _print_state(book_id, state):
    console = Console()
    status = state.status.value

    table = Table(title=f"{book_id} pipeline: [{status_style(status)}]{status}[/]")
    table.add_column("", width=2)
    table.add_column("Step", style="cyan")
    table.add_column("Status")
    table.add_column("Job")
    table.add_column("Detail")

    icons = {s['name']: s['icon'] for s in get_all_step_metadata()}
    for step_def in STEP_DEFINITIONS:
        name = step_def['name']
        step = state.steps.get(StepName(name))
        step_status = step.status.value if step else 'pending'
        marker = "▶" if state.current_step and state.current_step.value == name else icons.get(name, '')
        detail = ''
        if step and step.error:
            detail = f"[red]{step.error}[/]"
        elif step and step.result:
            detail = step.result.get('message') or ', '.join(
                f"{k}={v}" for k, v in step.result.items() if isinstance(v, (int, str)) and k != 'job_id'
            )
        table.add_row(
            marker,
            name,
            f"[{status_style(step_status)}]{step_status}[/]",
            (step.job_id or '') if step else '',
            detail,
        )

    console.print(table)
    if state.error:
        print(f"❌ {state.error}")


def _print_runs(runs):
    for run in runs:
        line = f"  {run.step.value}: {run.outcome.status}"
        if run.outcome.job_id:
            line += f" (job {run.outcome.job_id})"
        if run.outcome.error:
            line += f" - {run.outcome.error}"
        print(line)


def cmd_pipeline_status(args):
    services = load_services(args)
    state = services.orchestrator.get_state(args.book_id)
    if args.json:
        print_json(state.to_dict())
        return
    _print_state(args.book_id, state)


def cmd_pipeline_start(args):
    services = load_services(args)
    config = {
        'model': args.model,
        'language': args.language,
        'target_language': args.target_language,
        'license': args.license,
    }
    state = services.orchestrator.start(args.book_id, config)
    print(f"▶️  Pipeline started for {args.book_id} "
          f"({state.config.language} → {state.config.target_language}, {state.config.model})")

    if args.run:
        _print_runs(services.orchestrator.run(args.book_id))
        _print_state(args.book_id, services.orchestrator.get_state(args.book_id))


def cmd_pipeline_run(args):
    services = load_services(args)
    runs = services.orchestrator.run(args.book_id)
    if not runs:
        print("Nothing to run (a step is waiting on its job)")
    _print_runs(runs)
    _print_state(args.book_id, services.orchestrator.get_state(args.book_id))


def cmd_pipeline_step(args):
    services = load_services(args)
    run = services.orchestrator.execute_step(args.book_id, args.step)
    if args.json:
        print_json(run.to_dict())
        return
    _print_runs([run])
    if run.next_step:
        print(f"  next: {run.next_step.value}")


def cmd_pipeline_action(args):
    services = load_services(args)
    state = services.orchestrator.apply_action(args.book_id, args.action)
    print(f"✓ {args.action}: pipeline is now {state.status.value}")


def setup_pipeline_parser(subparsers):
    pipeline_parser = subparsers.add_parser('pipeline', help='Per-book pipeline (split_check → ocr → translate → summarize → edition)')
    pipeline_subparsers = pipeline_parser.add_subparsers(dest='pipeline_command', help='Pipeline command')
    pipeline_subparsers.required = True

    status_parser = pipeline_subparsers.add_parser('status', help='Show pipeline state')
    status_parser.add_argument('book_id', help='Book ID')
    status_parser.add_argument('--json', action='store_true', help='Output as JSON')
    status_parser.set_defaults(func=cmd_pipeline_status)

    start_parser = pipeline_subparsers.add_parser('start', help='Start (or restart) the pipeline')
    start_parser.add_argument('book_id', help='Book ID')
    start_parser.add_argument('--model', help='Model (default: from config)')
    start_parser.add_argument('--language', help='Source language')
    start_parser.add_argument('--target-language', help='Translation target language')
    start_parser.add_argument('--license', help='License for the edition')
    start_parser.add_argument('--run', action='store_true', help='Run steps immediately after starting')
    start_parser.set_defaults(func=cmd_pipeline_start)

    run_parser = pipeline_subparsers.add_parser('run', help='Run steps until one hands off to a job or fails')
    run_parser.add_argument('book_id', help='Book ID')
    run_parser.set_defaults(func=cmd_pipeline_run)

    step_parser = pipeline_subparsers.add_parser('step', help='Execute a single step')
    step_parser.add_argument('book_id', help='Book ID')
    step_parser.add_argument('step', choices=[s['name'] for s in STEP_DEFINITIONS], help='Step name')
    step_parser.add_argument('--json', action='store_true', help='Output as JSON')
    step_parser.set_defaults(func=cmd_pipeline_step)

    for action, help_text in [
        ('pause', 'Pause a running pipeline'),
        ('resume', 'Resume a paused pipeline'),
        ('reset', 'Reset every step to pending'),
    ]:
        action_parser = pipeline_subparsers.add_parser(action, help=help_text)
        action_parser.add_argument('book_id', help='Book ID')
        action_parser.set_defaults(func=cmd_pipeline_action, action=action)

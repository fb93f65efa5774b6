import argparse
import sys

import cli.library
import cli.config
from cli.namespace_batch import setup_batch_parser
from cli.namespace_job import setup_job_parser
from cli.namespace_pipeline import setup_pipeline_parser
from cli.namespace_split import setup_split_parser
from cli.serve import setup_serve_parser
from infra.errors import ScriptoriumError


def create_parser():
    parser = argparse.ArgumentParser(
        prog='scriptorium',
        description='Scriptorium - OCR, translate and publish scanned books',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Configuration (run first!)
  scriptorium init                              # Initialize library config
  scriptorium config show
  scriptorium config set defaults.ocr_limit 200
  scriptorium config set-key gemini '${GEMINI_API_KEY}'

  # Library management
  scriptorium library add de-natura --title "De Natura Rerum" --author Lucretius
  scriptorium library pages de-natura ~/Scans/de-natura/*.jpg
  scriptorium library list
  scriptorium library stats de-natura

  # Batch jobs
  scriptorium batch submit de-natura ocr --limit 50
  scriptorium batch poll batches/abc123
  scriptorium batch sync
  scriptorium job list --book de-natura
  scriptorium job action <job-id> retry
  scriptorium job submit <job-id>

  # Pipeline
  scriptorium pipeline start de-natura --language Latin
  scriptorium pipeline run de-natura
  scriptorium pipeline status de-natura

  # Split detection
  scriptorium split detect de-natura --limit 20
  scriptorium split label de-natura --limit 20
  scriptorium split train
  scriptorium split predict de-natura-p0042

  # HTTP API
  scriptorium serve --port 8080
"""
    )

    subparsers = parser.add_subparsers(dest='command', help='Command namespace')
    subparsers.required = True

    cli.config.setup_parser(subparsers)
    cli.library.setup_parser(subparsers)
    setup_batch_parser(subparsers)
    setup_job_parser(subparsers)
    setup_pipeline_parser(subparsers)
    setup_split_parser(subparsers)
    setup_serve_parser(subparsers)

    return parser


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except ScriptoriumError as e:
        print(f"❌ {e.message}")
        for key, value in e.details.items():
            if value is not None:
                print(f"   {key}: {value}")
        sys.exit(1)

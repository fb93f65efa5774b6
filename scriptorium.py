#!/usr/bin/env python3
"""
Scriptorium CLI - OCR, translate and publish scanned books

Commands:
  Configuration:
    scriptorium init                     Create config.yaml in the library
    scriptorium config show|set|set-key  Inspect and edit configuration

  Library:
    scriptorium library add|pages|list|stats

  Jobs:
    scriptorium batch submit|poll|list|cancel|sync
    scriptorium job list|show|action|submit|delete

  Pipeline:
    scriptorium pipeline start|run|step|status|pause|resume|reset

  Split detection:
    scriptorium split detect|label|train|predict

  HTTP API:
    scriptorium serve
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from cli import main


if __name__ == '__main__':
    main()

"""
Config CLI commands: init, config show|set|set-key.

All of them operate on {BOOK_STORAGE_ROOT}/config.yaml.
"""

from cli.config.init import cmd_init
from cli.config.show import cmd_config_show
from cli.config.set import cmd_config_set, cmd_config_set_key


def setup_parser(subparsers):
    init_parser = subparsers.add_parser('init', help='Create config.yaml in the library')
    init_parser.add_argument('--force', action='store_true', help='Overwrite an existing config')
    init_parser.set_defaults(func=cmd_init)

    config_parser = subparsers.add_parser('config', help='Inspect and edit library configuration')
    config_subparsers = config_parser.add_subparsers(dest='config_command', help='Config command')
    config_subparsers.required = True

    show_parser = config_subparsers.add_parser('show', help='Show provider settings, defaults and keys')
    show_parser.add_argument('--json', action='store_true', help='Output as JSON')
    show_parser.add_argument('--reveal-keys', action='store_true', help='Show resolved API keys unmasked')
    show_parser.set_defaults(func=cmd_config_show)

    set_parser = config_subparsers.add_parser('set', help='Set one value by dotted key')
    set_parser.add_argument('key', help='e.g. defaults.ocr_limit, provider.request_timeout')
    set_parser.add_argument('value', help='Parsed as bool, number or JSON where possible')
    set_parser.set_defaults(func=cmd_config_set)

    key_parser = config_subparsers.add_parser('set-key', help='Store an API key (literal or ${ENV_VAR})')
    key_parser.add_argument('name', help='Key name (e.g., gemini)')
    key_parser.add_argument('value', help='Key value or ${ENV_VAR} reference')
    key_parser.set_defaults(func=cmd_config_set_key)


__all__ = ['cmd_init', 'cmd_config_show', 'cmd_config_set', 'cmd_config_set_key', 'setup_parser']

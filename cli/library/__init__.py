from cli.library.add import cmd_add, cmd_add_pages
from cli.library.list import cmd_list, cmd_stats


def setup_parser(subparsers):
    """Setup library command parser."""
    library_parser = subparsers.add_parser('library', help='Library management commands')
    library_subparsers = library_parser.add_subparsers(dest='library_command', help='Library command')
    library_subparsers.required = True

    add_parser = library_subparsers.add_parser('add', help='Add a book to the library')
    add_parser.add_argument('book_id', help='Book ID (used in page IDs and URLs)')
    add_parser.add_argument('--title', required=True, help='Book title')
    add_parser.add_argument('--author', help='Author')
    add_parser.add_argument('--year', type=int, help='Publication year')
    add_parser.add_argument('--language', help='Source language of the scans')
    add_parser.set_defaults(func=cmd_add)

    pages_parser = library_subparsers.add_parser('pages', help='Register page images for a book')
    pages_parser.add_argument('book_id', help='Book ID')
    pages_parser.add_argument('photos', nargs='+', help='Image paths or URLs, in page order')
    pages_parser.add_argument('--start', type=int, default=1, help='Page number of the first image (default: 1)')
    pages_parser.set_defaults(func=cmd_add_pages)

    list_parser = library_subparsers.add_parser('list', help='List all books')
    list_parser.add_argument('--json', action='store_true', help='Output as JSON')
    list_parser.set_defaults(func=cmd_list)

    stats_parser = library_subparsers.add_parser('stats', help='Page progress for a book')
    stats_parser.add_argument('book_id', help='Book ID')
    stats_parser.add_argument('--json', action='store_true', help='Output as JSON')
    stats_parser.set_defaults(func=cmd_stats)


__all__ = ['cmd_add', 'cmd_add_pages', 'cmd_list', 'cmd_stats', 'setup_parser']

from rich.console import Console
from rich.table import Table

from cli.helpers import print_json, status_style
from infra.config import get_storage_root
from infra.storage.library import Library


def cmd_list(args):
    library = Library(storage_root=get_storage_root())
    books = library.list_books()

    if not books:
        print("No books in library. Use 'scriptorium library add <book-id> --title ...' to add one.")
        return

    rows = []
    for book in books:
        stats = library.get_stats(book['id'])
        pipeline = book.get('pipeline') or {}
        rows.append({
            'book_id': book['id'],
            'title': book.get('title', 'Unknown'),
            'author': book.get('author', ''),
            'pages': stats['pages'],
            'ocr': stats['ocr'],
            'translated': stats['translated'],
            'pipeline': pipeline.get('status', 'idle'),
            'current_step': pipeline.get('currentStep'),
        })

    if args.json:
        print_json(rows)
        return

    table = Table(title=f"Library ({len(rows)} books)")
    table.add_column("Book", style="cyan")
    table.add_column("Title")
    table.add_column("Author")
    table.add_column("Pages", justify="right")
    table.add_column("OCR", justify="right")
    table.add_column("Translated", justify="right")
    table.add_column("Pipeline")

    for row in rows:
        pipeline = row['pipeline']
        if row['current_step']:
            pipeline = f"{pipeline} ({row['current_step']})"
        table.add_row(
            row['book_id'],
            row['title'],
            row['author'] or '',
            str(row['pages']),
            str(row['ocr']),
            str(row['translated']),
            f"[{status_style(row['pipeline'])}]{pipeline}[/]",
        )

    Console().print(table)


def cmd_stats(args):
    library = Library(storage_root=get_storage_root())
    book = library.books.require(args.book_id)
    stats = library.get_stats(args.book_id)

    if args.json:
        print_json({'book_id': args.book_id, **stats})
        return

    total = stats['pages'] or 1
    print(f"\n📊 {book.get('title', args.book_id)}")
    print(f"   Pages:      {stats['pages']}")
    print(f"   OCR:        {stats['ocr']} ({stats['ocr'] / total:.0%})")
    print(f"   Translated: {stats['translated']} ({stats['translated'] / total:.0%})")
    if book.get('current_edition_id'):
        print(f"   Edition:    {book['current_edition_id']}")
    print()

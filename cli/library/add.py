from cli.helpers import fail
from infra.config import get_storage_root
from infra.storage.library import Library


def cmd_add(args):
    library = Library(storage_root=get_storage_root())

    metadata = {
        k: v for k, v in {
            'author': args.author,
            'year': args.year,
            'language': args.language,
        }.items() if v is not None
    }

    if library.books.exists(args.book_id):
        fail(f"Book already exists: {args.book_id}")

    book = library.add_book(args.book_id, args.title, **metadata)
    print(f"✅ Added {book['id']}: {book['title']}")
    print(f"   Next: scriptorium library pages {book['id']} <images...>")


def cmd_add_pages(args):
    library = Library(storage_root=get_storage_root())
    pages = library.add_pages(args.book_id, args.photos, start=args.start)

    first, last = pages[0]['page_number'], pages[-1]['page_number']
    print(f"✅ Added {len(pages)} pages to {args.book_id} (pages {first}-{last})")

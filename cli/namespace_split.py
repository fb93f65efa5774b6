from rich.console import Console
from rich.table import Table

from cli.helpers import load_services, print_json
from pipeline.split import SplitCalibrator, detect_split, to_grayscale


def cmd_split_detect(args):
    services = load_services(args)
    if args.page_id:
        pages = [services.library.pages.require(args.page_id)]
    else:
        pages = services.library.list_pages(args.book_id)[:args.limit]

    results = []
    for page in pages:
        img = services.image_loader.load_image(page)
        detection = detect_split(to_grayscale(img))
        results.append({'page_id': page['id'], **detection.to_dict()})

    if args.json:
        print_json(results)
        return

    table = Table(title="Split detection")
    table.add_column("Page", style="cyan")
    table.add_column("Spread")
    table.add_column("Position", justify="right")
    table.add_column("Confidence")
    table.add_column("Score", justify="right")
    table.add_column("Aspect", justify="right")
    table.add_column("Warning")

    colors = {'high': 'green', 'medium': 'yellow', 'low': 'red'}
    for r in results:
        table.add_row(
            r['page_id'],
            "✓" if r['isTwoPageSpread'] else "",
            str(r['splitPosition']),
            f"[{colors[r['confidence']]}]{r['confidence']}[/]",
            f"{r['score']:.1f}",
            f"{r['aspectRatio']:.2f}",
            r['textWarning'] or '',
        )

    Console().print(table)


def cmd_split_label(args):
    calibrator = SplitCalibrator(load_services(args))
    print(f"🔍 Labelling up to {args.limit} pages of {args.book_id} with a vision model...")
    summary = calibrator.label_book(args.book_id, limit=args.limit, model=args.model)

    print(f"✓ Labelled {summary['labelled']} pages ({summary['failed']} failed)")
    for error in summary['errors']:
        print(f"   ✗ {error['page_id']}: {error['error']}")


def cmd_split_train(args):
    calibrator = SplitCalibrator(load_services(args))
    model = calibrator.train(book_id=args.book_id, seed=args.seed)

    print(f"✅ Trained split model v{model['version']}")
    print(f"   Training examples: {model['training_size']} (validation {model['validation_size']})")
    print(f"   Validation MSE:    {model['validation_mse']:.1f}")
    if args.verbose:
        for name, value in model['weights'].items():
            print(f"   {name}: {value:.4f}")


def cmd_split_predict(args):
    calibrator = SplitCalibrator(load_services(args))
    prediction = calibrator.predict_page(args.page_id)

    if args.json:
        print_json(prediction)
        return

    heuristic = prediction['heuristic']
    print(f"📐 {prediction['page_id']}")
    print(f"   Model v{prediction['model_version']}: {prediction['split_position']}")
    print(f"   Heuristic:  {heuristic['splitPosition']} ({heuristic['confidence']})")


def setup_split_parser(subparsers):
    split_parser = subparsers.add_parser('split', help='Two-page spread detection and split calibration')
    split_subparsers = split_parser.add_subparsers(dest='split_command', help='Split command')
    split_subparsers.required = True

    detect_parser = split_subparsers.add_parser('detect', help='Run the gutter heuristic on pages')
    detect_parser.add_argument('book_id', help='Book ID')
    detect_parser.add_argument('--page', dest='page_id', help='A single page ID')
    detect_parser.add_argument('--limit', type=int, default=10, help='Pages to analyse (default: 10)')
    detect_parser.add_argument('--json', action='store_true', help='Output as JSON')
    detect_parser.set_defaults(func=cmd_split_detect)

    label_parser = split_subparsers.add_parser('label', help='Label pages with a vision model for training')
    label_parser.add_argument('book_id', help='Book ID')
    label_parser.add_argument('--limit', type=int, default=20, help='Pages to label (default: 20)')
    label_parser.add_argument('--model', help='Model (default: from config)')
    label_parser.set_defaults(func=cmd_split_label)

    train_parser = split_subparsers.add_parser('train', help='Fit the linear split model on labelled pages')
    train_parser.add_argument('--book', dest='book_id', help='Only examples from this book')
    train_parser.add_argument('--seed', type=int, help='Shuffle seed for the validation split')
    train_parser.add_argument('-v', '--verbose', action='store_true', help='Print fitted weights')
    train_parser.set_defaults(func=cmd_split_train)

    predict_parser = split_subparsers.add_parser('predict', help='Predict a split position with the active model')
    predict_parser.add_argument('page_id', help='Page ID')
    predict_parser.add_argument('--json', action='store_true', help='Output as JSON')
    predict_parser.set_defaults(func=cmd_split_predict)

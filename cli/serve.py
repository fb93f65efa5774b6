from cli.helpers import load_services
from web.config import Config


def cmd_serve(args):
    from web.app import create_app

    services = load_services(args)
    app = create_app(services)

    print(f"\n🚀 Scriptorium API starting on http://{args.host}:{args.port}")
    print(f"📁 Library: {services.library.storage_root}")
    print(f"🤖 Batch model: {services.config.defaults.model}\n")

    try:
        app.run(host=args.host, port=args.port, debug=args.debug)
    finally:
        services.close()


def setup_serve_parser(subparsers):
    serve_parser = subparsers.add_parser('serve', help='Start the HTTP API server')
    serve_parser.add_argument('--port', type=int, default=Config.PORT, help=f'Port (default: {Config.PORT})')
    serve_parser.add_argument('--host', default=Config.HOST, help=f'Host to bind to (default: {Config.HOST})')
    serve_parser.add_argument('--debug', action='store_true', default=Config.DEBUG, help='Enable Flask debug mode')
    serve_parser.set_defaults(func=cmd_serve)

"""
Command line entry point.

    httpupload serve               run the server (default)
    httpupload sign /a/b.png -s 10 print a signed upload URL

Configuration comes from HTTPUP_* environment variables.
"""
import argparse
import sys
from urllib.parse import quote, urlencode

from pydantic import ValidationError

from httpupload.auth.signature import V1_ARG, V2_ARG, sign_v1, sign_v2
from httpupload.config import get_settings


def serve(args) -> int:
    import uvicorn

    from httpupload.main import create_app

    settings = get_settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


def sign(args) -> int:
    secret = get_settings().secret.get_secret_value()

    if args.version == 1:
        query = urlencode({V1_ARG: sign_v1(secret, args.path, args.size)})
    else:
        query = urlencode({V2_ARG: sign_v2(secret, args.path, args.size, args.content_type)})

    print(f"{args.base_url.rstrip('/')}{quote(args.path)}?{query}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog='httpupload',
        description='Storage backend for XMPP external HTTP uploads'
    )
    subparsers = parser.add_subparsers(dest='command')

    serve_parser = subparsers.add_parser('serve', help='Run the upload server')
    serve_parser.set_defaults(func=serve)

    sign_parser = subparsers.add_parser('sign', help='Print a signed upload URL')
    sign_parser.add_argument('path', help='URL path of the upload, e.g. /a/b.png')
    sign_parser.add_argument('--size', '-s', type=int, required=True,
                             help='Exact size of the body in bytes')
    sign_parser.add_argument('--content-type', '-t', default='',
                             help='Content-Type the client will send (v2 only)')
    sign_parser.add_argument('--version', '-v', type=int, choices=[1, 2], default=2,
                             help='Signature scheme (default: 2)')
    sign_parser.add_argument('--base-url', default='http://localhost:8889',
                             help='Public base URL of this server')
    sign_parser.set_defaults(func=sign)

    args = parser.parse_args(argv)
    if args.command is None:
        args.func = serve

    try:
        return args.func(args)
    except ValidationError as e:
        print(f"error reading config: {e}", file=sys.stderr)
        return 2
    except RuntimeError as e:
        print(str(e), file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())

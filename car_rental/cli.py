import argparse

from . import create_app, init_db


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Car rental management app")
    parser.add_argument('--init-db', action='store_true', help='Initialise the database')
    parser.add_argument('--host', default='127.0.0.1')
    parser.add_argument('--port', type=int, default=5000)
    parser.add_argument('--debug', action='store_true', help='Run with the Flask debugger')
    args = parser.parse_args(argv)

    app = create_app()
    if args.init_db:
        init_db(app)
    else:
        app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == '__main__':
    main()

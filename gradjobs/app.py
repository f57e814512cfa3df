import argparse
import getpass
import json
from pathlib import Path

from . import __version__
from . import services
from .database import get_session, init_database
from .env import load_config, load_env
from .errors import GradJobsError
from .logger import get_logger
from .storage import seed_reference_data


def _config(args: argparse.Namespace):
    config = load_config()
    if getattr(args, "db", None):
        config.db_path = Path(args.db)
    return config


def cmd_serve(args: argparse.Namespace) -> None:
    from .api import create_app

    config = _config(args)
    host = args.host or config.host
    port = args.port or config.port
    app = create_app(config)
    get_logger().info("Starting API server", host=host, port=port, db=str(config.db_path))
    try:
        app.run(host=host, port=port, debug=args.debug)
    finally:
        get_logger().log_metrics_summary()


def cmd_init_db(args: argparse.Namespace) -> None:
    config = _config(args)
    init_database(config.db_path)
    print(f"Database ready: {config.db_path}")


def cmd_seed(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    config = _config(args)
    init_database(config.db_path)
    session = get_session(config.db_path)
    try:
        counts = seed_reference_data(session, data)
    finally:
        session.close()
    print(f"Done. job_roles={counts['job_roles']} skills={counts['skills']}")


def cmd_create_admin(args: argparse.Namespace) -> None:
    password = args.password or getpass.getpass("Password: ")
    config = _config(args)
    init_database(config.db_path)
    session = get_session(config.db_path)
    try:
        user = services.create_admin(
            session, {"username": args.username, "email": args.email, "password": password}
        )
    except GradJobsError as e:
        raise SystemExit(e.message)
    finally:
        session.close()
    print(f"Admin created: {user.username} (id={user.id})")


def _print_breakdown(label: str, breakdown) -> None:
    print(f"{label}")
    print(f"  Score: {breakdown.total:.1f} (gpa={breakdown.gpa:.1f} role={breakdown.role:.1f} skills={breakdown.skills:.1f})")


def cmd_match_jobs(args: argparse.Namespace) -> None:
    config = _config(args)
    init_database(config.db_path)
    session = get_session(config.db_path)
    try:
        matches = services.match_jobs(session, args.graduate)
    except GradJobsError as e:
        raise SystemExit(e.message)
    finally:
        session.close()

    if not matches:
        print("No eligible jobs.")
        return
    print(f"Found {len(matches)} eligible jobs for graduate {args.graduate}:\n")
    for job, breakdown in matches:
        _print_breakdown(f"Job {job.id}: {job.title}", breakdown)
        print()


def cmd_match_peers(args: argparse.Namespace) -> None:
    config = _config(args)
    init_database(config.db_path)
    session = get_session(config.db_path)
    try:
        matches = services.match_peers(session, args.graduate)
    except GradJobsError as e:
        raise SystemExit(e.message)
    finally:
        session.close()

    if not matches:
        print("No potential contacts.")
        return
    print(f"Found {len(matches)} potential contacts for graduate {args.graduate}:\n")
    for cv, breakdown in matches:
        _print_breakdown(f"Graduate {cv.graduate_id} (CV {cv.id})", breakdown)
        print()


def main():
    # Load .env if present (GRADJOBS_SECRET_KEY, GMAIL_ACCOUNT, etc.)
    load_env()
    parser = argparse.ArgumentParser(prog="gradjobs", description="Graduate job platform API")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    srv = subparsers.add_parser("serve", help="Run the HTTP API server")
    srv.add_argument("--host", help="Bind address (default: GRADJOBS_HOST or 127.0.0.1)")
    srv.add_argument("--port", type=int, help="Port (default: GRADJOBS_PORT or 2200)")
    srv.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    srv.add_argument("--db", help="Path to SQLite database (default: GRADJOBS_DB_PATH or data/jobs.db)")
    srv.set_defaults(func=cmd_serve)

    ini = subparsers.add_parser("init-db", help="Create the database tables")
    ini.add_argument("--db", help="Path to SQLite database")
    ini.set_defaults(func=cmd_init_db)

    sed = subparsers.add_parser("seed", help="Load job roles and skills from a JSON file")
    sed.add_argument("--input", required=True, help='JSON file: {"job_roles": [...], "skills": [...]}')
    sed.add_argument("--db", help="Path to SQLite database")
    sed.set_defaults(func=cmd_seed)

    adm = subparsers.add_parser("create-admin", help="Create an administrator account")
    adm.add_argument("--username", required=True)
    adm.add_argument("--email", required=True)
    adm.add_argument("--password", help="Prompted for when omitted")
    adm.add_argument("--db", help="Path to SQLite database")
    adm.set_defaults(func=cmd_create_admin)

    mj = subparsers.add_parser("match-jobs", help="List open jobs a graduate is eligible for")
    mj.add_argument("--graduate", type=int, required=True, help="Graduate user id")
    mj.add_argument("--db", help="Path to SQLite database")
    mj.set_defaults(func=cmd_match_jobs)

    mp = subparsers.add_parser("match-peers", help="List graduates worth suggesting as contacts")
    mp.add_argument("--graduate", type=int, required=True, help="Graduate user id")
    mp.add_argument("--db", help="Path to SQLite database")
    mp.set_defaults(func=cmd_match_peers)

    args = parser.parse_args()

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()

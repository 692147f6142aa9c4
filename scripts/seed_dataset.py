from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from skillgap.infrastructure.config import DatabaseConfig
from skillgap.infrastructure.db import create_database_engine, create_session_factory
from skillgap.utils.seed import initialise_database, load_seed_file, seed_from_json

DEFAULT_SEED_PATH = Path(__file__).resolve().parent.parent / "data" / "sample_catalog.json"


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the skill catalog from a JSON file")

    parser.add_argument(
        "--backend", choices=["sqlite", "mysql"], default=os.environ.get("DB_BACKEND", "sqlite")
    )
    parser.add_argument("--sqlite-path", default=os.environ.get("DB_SQLITE_PATH", "./skillgap.db"))
    parser.add_argument("--mysql-host", default=os.environ.get("DB_MYSQL_HOST", "localhost"))
    parser.add_argument("--mysql-port", type=int, default=int(os.environ.get("DB_MYSQL_PORT") or 3306))
    parser.add_argument("--mysql-user", default=os.environ.get("DB_MYSQL_USER", "root"))
    parser.add_argument("--mysql-password", default=os.environ.get("DB_MYSQL_PASSWORD", ""))
    parser.add_argument(
        "--mysql-database",
        "--mysql-db",
        dest="mysql_database",
        default=os.environ.get("DB_MYSQL_DATABASE", "skillgap"),
    )
    parser.add_argument("--json", dest="json_path", default=str(DEFAULT_SEED_PATH))
    args = parser.parse_args()

    cfg = DatabaseConfig(
        backend=args.backend,
        sqlite_path=args.sqlite_path,
        mysql_host=args.mysql_host,
        mysql_port=args.mysql_port,
        mysql_user=args.mysql_user,
        mysql_password=args.mysql_password,
        mysql_database=args.mysql_database,
    )
    engine = create_database_engine(cfg)
    SessionLocal = create_session_factory(engine)
    initialise_database(engine)

    json_path = Path(args.json_path)
    if not json_path.exists():
        print(f"ERROR: seed file not found at {json_path}", file=sys.stderr)
        sys.exit(1)

    with SessionLocal() as session:
        counts = seed_from_json(session, load_seed_file(json_path))
        session.commit()
    print(
        f"Seed completed: {counts.skills} skills, {counts.job_roles} job roles, "
        f"{counts.assessments} assessments, {counts.questions} questions."
    )


if __name__ == "__main__":
    main()

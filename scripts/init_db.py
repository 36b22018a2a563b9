"""Bring the raffle database up to date and report its state.

Usage::

    python scripts/init_db.py            # upgrade to head, list tables and raffles
    python scripts/init_db.py --check    # only compare models with the live schema
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.autogenerate import api as ag_api
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from nftraffle.db.engine import make_engine
from nftraffle.models import Base, Raffle

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def upgrade_db(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to the requested revision."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def report(engine) -> None:
    """Print the tables and every raffle with its phase and balances."""
    tables = sorted(inspect(engine).get_table_names())
    print("Current tables:", ", ".join(tables))
    if Raffle.__tablename__ not in tables:
        return
    with Session(engine) as session:
        for raffle in session.scalars(select(Raffle).order_by(Raffle.id)):
            print(
                f"  raffle {raffle.id} ({raffle.name or '-'}): phase={raffle.phase} "
                f"cycle={raffle.cycle} entries={raffle.total_entries} "
                f"fee_pool={raffle.fee_pool_balance}"
            )


def check_drift(engine) -> int:
    """Return 0 when the live schema matches the models, 1 on drift, 2 on error."""
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(context, Base.metadata).upgrade_ops
    except Exception as exc:
        print(f"Schema drift check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2

    if upgrade_ops is None or upgrade_ops.is_empty():
        print(f"Schema drift check: OK for {url_display}.")
        return 0
    print(f"Schema drift check: FAILED for {url_display}. Differences detected:")
    for op in upgrade_ops.ops or []:
        print(f"- {op}")
    return 1


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--check", action="store_true", help="only check schema drift")
    parser.add_argument("--revision", default="head", help="alembic target revision")
    args = parser.parse_args(argv)

    engine = make_engine()
    if args.check:
        return check_drift(engine)
    upgrade_db(args.revision)
    report(engine)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Create (or report) the raffle instance this deployment operates.

Reads ``RAFFLE_OPERATOR``, ``RAFFLE_ENTRY_FEE`` (default 100) and
``RAFFLE_NAME`` (default ``nft-raffle``) from the environment / ``.env``.
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from nftraffle.db.engine import get_sessionmaker, make_engine
from nftraffle.workflows import create_raffle, get_raffle

logger = logging.getLogger("deploy_raffle")


def main() -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    operator = os.getenv("RAFFLE_OPERATOR")
    if not operator:
        print("Environment variable 'RAFFLE_OPERATOR' is not set", file=sys.stderr)
        return 2
    name = os.getenv("RAFFLE_NAME", "nft-raffle")
    try:
        entry_fee = int(os.getenv("RAFFLE_ENTRY_FEE", "100"))
    except ValueError:
        print("RAFFLE_ENTRY_FEE must be an integer", file=sys.stderr)
        return 2

    engine = make_engine()
    Session = get_sessionmaker(engine)
    logger.info(f"Deploying raffle {name!r} with the operator account {operator}")

    with Session.begin() as session:
        raffle = get_raffle(session, name)
        if raffle is not None:
            if raffle.operator != operator or raffle.entry_fee != entry_fee:
                print(
                    f"Raffle {name!r} already exists with operator {raffle.operator} "
                    f"and entry fee {raffle.entry_fee}",
                    file=sys.stderr,
                )
                return 1
            logger.info(f"Raffle {name!r} already deployed as id {raffle.id}")
            return 0
        raffle = create_raffle(session, operator, entry_fee, name=name)
        logger.info(f"Raffle {name!r} deployed as id {raffle.id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
Deployment preflight for TradeMaster.

Run before starting the API, from backend/:

  python -m trademaster.preflight      (or the `trademaster-preflight` script)

Checks that both JWT signing secrets are configured and that the database
schema is at the Alembic head. Exits non-zero and prints each problem otherwise;
fix a stale schema with `alembic upgrade head`.
"""

import sys
from pathlib import Path
from typing import List, Optional, Set

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from trademaster.config import Settings, settings
from trademaster.core.database import build_engine
from trademaster.core.exceptions import ConfigurationError

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


def head_revisions(ini_path: Path = ALEMBIC_INI) -> Set[str]:
    config = Config(str(ini_path))
    config.set_main_option("script_location", str(ini_path.parent / "alembic"))
    return set(ScriptDirectory.from_config(config).get_heads())


def current_revisions(engine: Engine) -> Set[str]:
    with engine.connect() as conn:
        return set(MigrationContext.configure(conn).get_current_heads())


def run_checks(cfg: Settings = settings, engine: Optional[Engine] = None) -> List[str]:
    """
    Collect every preflight problem

    Args:
        cfg: Settings to check
        engine: Database to inspect; built from cfg when omitted

    Returns:
        List[str]: Human-readable problems, empty when ready to serve
    """
    problems: List[str] = []
    try:
        cfg.validate_security_settings()
    except ConfigurationError as e:
        problems.append(str(e))

    owns_engine = engine is None
    if engine is None:
        engine = build_engine(cfg.get_database_url())
    try:
        current = current_revisions(engine)
        heads = head_revisions()
        if current != heads:
            found = ", ".join(sorted(current)) or "no revision"
            problems.append(
                f"Database schema is at {found}, expected {', '.join(sorted(heads))}. "
                "Run `alembic upgrade head`."
            )
    except SQLAlchemyError as e:
        problems.append(f"Cannot connect to database: {e}")
    finally:
        if owns_engine:
            engine.dispose()

    return problems


def main() -> int:
    problems = run_checks()
    if problems:
        print("Preflight failed:")
        for problem in problems:
            print(f"  - {problem}")
        return 1
    print("Preflight OK: signing secrets set, database at Alembic head.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

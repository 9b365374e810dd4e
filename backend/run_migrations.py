"""Create the database tables for the configured `DATABASE_URL`."""
from pathlib import Path
import sys

BASE = Path(__file__).parent
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from alumni_network.config import settings
from alumni_network.database import build_engine, create_db_and_tables


def run():
    """Create every table registered on the SQLModel metadata.

    Existing tables are left untouched, so the script is safe to run
    repeatedly against a development database.
    """
    print("Using database:", settings.DATABASE_URL)
    engine = build_engine(settings)
    create_db_and_tables(engine)
    engine.dispose()
    print("Tables created.")

if __name__ == '__main__':
    run()

"""
Import an exercise catalog CSV into Supabase.

Usage:
    python scripts/import_exercises.py [path/to/exercises.csv]
"""
import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv

from gymrack.catalog_import import import_exercises, parse_exercise_csv
from gymrack.database import SupabaseStore, get_supabase_client

DEFAULT_CSV = ROOT / "CSV" / "sample-exercises.csv"

logger = logging.getLogger("import_exercises")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed the exercise catalog from a CSV export.")
    parser.add_argument("csv_path", nargs="?", default=str(DEFAULT_CSV))
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    client = get_supabase_client()
    if client is None:
        logger.error("Supabase is not configured; set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        return 1

    store = SupabaseStore(client)
    try:
        exercises = parse_exercise_csv(args.csv_path)
        counts = import_exercises(exercises, store)
    except Exception as e:
        logger.error(f"Import failed: {e}")
        return 1
    finally:
        store.close()

    logger.info(f"Import completed: {counts['imported']} imported, {counts['skipped']} skipped")
    return 0


if __name__ == "__main__":
    sys.exit(main())

from datetime import timedelta

FIXTURES_PATH = "tests/fixtures"
SKIP_TABLES = ["alembic_version"]
GENERATE_IDS = True
GENERATE_IDS_EXCLUDED_COLUMN_NAMES: list[str] = []
WRITE_EMPTY_FILES = False
LEGACY_FIXTURES: list[str] = []
RECORD_NAME_FIELDS: list[str] = []
RECENT_WINDOW = timedelta(days=1)
FILES_TO_CHECK: list[str] = []
USE_SHA1_DIGESTS = False
SQLITE_FOREIGN_KEY_SUPPORT = True

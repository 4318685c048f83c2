import sqlite3
import glob
import os

DB_PATH = os.getenv("DB_PATH", os.path.join("data", "sqlite", "photobooking.db"))
MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "migrations")


def apply_migrations(db_path=DB_PATH, migrations_dir=MIGRATIONS_DIR) -> list[str]:
    """Apply numbered NNN_*.sql files newer than the recorded schema version."""
    print(f"Using DB: {db_path}")
    os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
    conn = sqlite3.connect(db_path)
    cur = conn.cursor()

    cur.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            applied_at TEXT DEFAULT CURRENT_TIMESTAMP
        );
    """)

    cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations;")
    current_version = cur.fetchone()[0]
    print(f"Schema version {current_version}")

    applied = []
    for path in sorted(glob.glob(os.path.join(migrations_dir, "*.sql"))):
        filename = os.path.basename(path)
        version = int(filename.split("_")[0])
        if version <= current_version:
            continue

        with open(path, "r", encoding="utf-8") as f:
            cur.executescript(f.read())
        cur.execute("INSERT INTO schema_migrations(version) VALUES (?)", (version,))
        conn.commit()
        applied.append(filename)
        print(f"Applied {filename}")

    conn.close()
    return applied


if __name__ == "__main__":
    apply_migrations()

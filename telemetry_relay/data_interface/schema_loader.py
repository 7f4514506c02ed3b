import json
from functools import lru_cache
from pathlib import Path

SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"


@lru_cache(maxsize=None)
def load_schemas():
    """Loads all schemas from the schemas directory, keyed by file stem."""
    schemas = {}
    for path in sorted(SCHEMA_DIR.glob("*.schema.json")):
        with open(path, "r") as f:
            schemas[path.name[: -len(".schema.json")]] = json.load(f)
    if not schemas:
        raise FileNotFoundError(f"No schemas found in {SCHEMA_DIR}")
    return schemas


def get_schema(name: str) -> dict:
    """Retrieves a schema by name."""
    schemas = load_schemas()
    if name not in schemas:
        raise KeyError(f"No schema named {name}")
    return schemas[name]

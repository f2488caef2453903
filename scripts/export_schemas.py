"""Export JSON schemas for every resource's validation schema."""

import json
from pathlib import Path

from leavedesk.app.resources import default_registry


def export_schemas(schemas_dir: Path) -> list[Path]:
    """Write one ``<resource>.schema.json`` per registered resource."""
    schemas_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for descriptor in default_registry():
        path = schemas_dir / f"{descriptor.name}.schema.json"
        with open(path, "w") as f:
            json.dump(descriptor.schema.model_json_schema(), f, indent=2)
        written.append(path)

    return written


def main() -> None:
    """Export schemas to docs/schemas/."""
    for path in export_schemas(Path("docs/schemas")):
        print(f"Exported schema to {path}")


if __name__ == "__main__":
    main()

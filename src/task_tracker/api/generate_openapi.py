"""
Utility script to generate and write the OpenAPI schema for the Task API.

The schema is serialized to interfaces/openapi.json so that API clients and
documentation tools can consume a stable contract without running the server.

Usage:
    python -m task_tracker.api.generate_openapi [output_path]
"""
from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from .main import create_app, openapi_tags

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = os.path.join("interfaces", "openapi.json")


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Ensure the OpenAPI schema carries the tag metadata, in particular the
    'tasks' tag with its description. Existing tag definitions are kept.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


# PUBLIC_INTERFACE
def generate_openapi(out_path: Optional[str] = None) -> str:
    """Generate the OpenAPI schema file and return the written file path."""
    out_path = out_path or DEFAULT_OUTPUT
    schema = create_app().openapi()
    _ensure_tags(schema)

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
    logger.info("Wrote OpenAPI schema to: %s", out_path)
    return out_path


def main() -> None:
    print(f"Wrote OpenAPI schema to: {generate_openapi(sys.argv[1] if len(sys.argv) > 1 else None)}")


if __name__ == "__main__":
    main()

"""
Write the API's OpenAPI document to disk for client code generation:
  python -m trial_issues.scripts.export_openapi [--output openapi.json]
"""
import argparse
import json
import sys
from pathlib import Path

from trial_issues.main import app


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Export the OpenAPI document as JSON.")
    parser.add_argument("--output", type=Path, default=Path("openapi.json"), help="Destination file")
    args = parser.parse_args(argv)

    document = app.openapi()
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
    print(f"Wrote OpenAPI {document.get('openapi', '')} document to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

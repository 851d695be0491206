from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Sequence

from pydantic import ValidationError

from routing_profiles.custom_model import CustomModel
from routing_profiles.merge import merge_custom_models
from routing_profiles.model_errors import ConstraintViolation
from routing_profiles.profiles import resolve_profile


def _load_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ValueError(f"required JSON file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON file: {path}") from e
    if not isinstance(data, dict):
        raise ValueError(f"expected JSON object in {path}")
    return data


def _load_model(path: Path) -> CustomModel:
    try:
        return CustomModel.model_validate(_load_json(path))
    except ValidationError as e:
        raise ValueError(f"invalid custom model in {path}: {e.error_count()} error(s)") from e


def run_merge(args: argparse.Namespace) -> dict[str, Any]:
    if bool(args.base) == bool(args.profile):
        raise ValueError("exactly one of --base or --profile is required")

    base = _load_model(Path(args.base).resolve()) if args.base else resolve_profile(args.profile)
    query = _load_model(Path(args.query).resolve())

    merged = merge_custom_models(base, query)
    payload = {
        "base": str(Path(args.base).resolve()) if args.base else f"profile:{args.profile}",
        "query": str(Path(args.query).resolve()),
        "fingerprint": merged.fingerprint(),
        "fingerprint_sha256": merged.fingerprint_digest(),
        "custom_model": merged.model_dump(mode="json"),
    }

    if args.output:
        output_path = Path(args.output).resolve()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(payload["custom_model"], indent=2), encoding="utf-8")
        payload["output"] = str(output_path)
    return payload


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Merge a query custom model onto a base model or profile.")
    parser.add_argument("--base", default=None, help="JSON file holding the base custom model.")
    parser.add_argument("--profile", default=None, help="Name of a server profile to use as the base.")
    parser.add_argument("--query", required=True, help="JSON file holding the query custom model.")
    parser.add_argument("--output", default=None, help="Write the merged custom model to this file.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    try:
        payload = run_merge(args)
    except ConstraintViolation as e:
        print(json.dumps({"error": e.message, "reason_code": e.reason_code, "details": e.details}, indent=2))
        return 2
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from pathlib import Path
from typing import Any, Optional

from graphpatch.config import EngineConfig, load_config
from graphpatch.errors import MalformedPatchError, PatchException
from graphpatch.merge_patch import apply_merge_patch, merge_patch_operations
from graphpatch.observability.metrics import render_prometheus
from graphpatch.observability.tracing import init_tracing
from graphpatch.patch import Patch
from graphpatch.wire import loads_patch

_SEMVER_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$")


def _resolve_repo_path(repo_root: Path, path: str) -> Path:
    p = Path(path)
    return p if p.is_absolute() else (repo_root / p)


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _write_json(obj: Any, out: Optional[Path]) -> None:
    text = json.dumps(obj, indent=2, ensure_ascii=False) + "\n"
    if out is None:
        sys.stdout.write(text)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    tmp = out.with_suffix(out.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(out)


def _load_engine_config(repo_root: Path, config: str) -> EngineConfig:
    cfg = load_config(path=_resolve_repo_path(repo_root, config))
    init_tracing(enabled=cfg.observability.tracing_enabled, service_name="graphpatchctl")
    return cfg


def _config_or_none(repo_root: Path, config: str, *, token: str) -> Optional[EngineConfig]:
    try:
        return _load_engine_config(repo_root, config)
    except Exception as e:
        print(f"{token}: invalid config {config}: {e}", file=sys.stderr)
        return None


def _read_document(repo_root: Path, path: str) -> Any:
    try:
        return _read_json(_resolve_repo_path(repo_root, path))
    except json.JSONDecodeError as e:
        raise MalformedPatchError(f"document {path} is not valid JSON: {e}") from e


def _read_patch(repo_root: Path, path: str, cfg: EngineConfig) -> Patch:
    text = _resolve_repo_path(repo_root, path).read_text(encoding="utf-8")
    return loads_patch(text, policy=cfg.policy)


def cmd_version(args: argparse.Namespace) -> int:
    repo_root = Path(__file__).resolve().parent
    path = repo_root / "VERSION"
    version = path.read_text(encoding="utf-8").strip() if path.is_file() else ""
    if _SEMVER_RE.match(version) is None:
        print(f"VERSION_FAILED: missing or invalid VERSION file: {path}")
        return 60
    print(version)
    return 0


def cmd_config_validate(args: argparse.Namespace) -> int:
    repo_root = Path(__file__).resolve().parent
    try:
        load_config(path=_resolve_repo_path(repo_root, args.config))
    except Exception as e:
        print(f"CONFIG_VALIDATE_FAILED: {e}")
        return 60
    print("CONFIG_VALIDATE_OK")
    return 0


def cmd_patch_validate(args: argparse.Namespace) -> int:
    repo_root = Path(__file__).resolve().parent
    cfg = _config_or_none(repo_root, args.config, token="PATCH_VALIDATE_FAILED")
    if cfg is None:
        return 60
    try:
        patch = _read_patch(repo_root, args.patch, cfg)
    except PatchException as e:
        print(f"PATCH_VALIDATE_FAILED: {json.dumps(e.to_dict(), ensure_ascii=False)}")
        return 20
    print(f"PATCH_VALIDATE_OK: {len(patch)}")
    return 0


def cmd_patch_apply(args: argparse.Namespace) -> int:
    repo_root = Path(__file__).resolve().parent
    cfg = _config_or_none(repo_root, args.config, token="PATCH_APPLY_FAILED")
    if cfg is None:
        return 60
    try:
        document = _read_document(repo_root, args.document)
        patch = _read_patch(repo_root, args.patch, cfg)
        patch.apply(document)
    except PatchException as e:
        print(f"PATCH_APPLY_FAILED: {json.dumps(e.to_dict(), ensure_ascii=False)}", file=sys.stderr)
        return 20

    out = _resolve_repo_path(repo_root, args.out) if args.out else None
    _write_json(document, out)
    if out is not None:
        print(f"PATCH_APPLY_OK: {out.as_posix()}")
    if args.metrics_out and cfg.observability.metrics_enabled:
        body, _ = render_prometheus()
        _resolve_repo_path(repo_root, args.metrics_out).write_bytes(body)
    return 0


def cmd_merge_apply(args: argparse.Namespace) -> int:
    repo_root = Path(__file__).resolve().parent
    if _config_or_none(repo_root, args.config, token="MERGE_APPLY_FAILED") is None:
        return 60
    try:
        document = _read_document(repo_root, args.document)
        merge_doc = _read_document(repo_root, args.merge_patch)
        if args.mode == "operations":
            merge_patch_operations(document, merge_doc).apply(document)
        else:
            apply_merge_patch(document, merge_doc)
    except PatchException as e:
        print(f"MERGE_APPLY_FAILED: {json.dumps(e.to_dict(), ensure_ascii=False)}", file=sys.stderr)
        return 20

    out = _resolve_repo_path(repo_root, args.out) if args.out else None
    _write_json(document, out)
    if out is not None:
        print(f"MERGE_APPLY_OK: {out.as_posix()}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="graphpatchctl")
    parser.add_argument("--log-level", default="WARNING", help="Python logging level.")
    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version")
    version.set_defaults(func=cmd_version)

    config = sub.add_parser("config")
    config_sub = config.add_subparsers(dest="config_command", required=True)

    cfg_validate = config_sub.add_parser("validate")
    cfg_validate.add_argument("--config", default="configs/dev.yaml", help="Config file (repo-relative).")
    cfg_validate.set_defaults(func=cmd_config_validate)

    patch = sub.add_parser("patch")
    patch_sub = patch.add_subparsers(dest="patch_command", required=True)

    patch_validate = patch_sub.add_parser("validate")
    patch_validate.add_argument("--patch", required=True, help="JSON Patch document (repo-relative unless absolute).")
    patch_validate.add_argument("--config", default="configs/dev.yaml", help="Config file (repo-relative).")
    patch_validate.set_defaults(func=cmd_patch_validate)

    patch_apply = patch_sub.add_parser("apply")
    patch_apply.add_argument("--document", required=True, help="JSON document to patch.")
    patch_apply.add_argument("--patch", required=True, help="JSON Patch document.")
    patch_apply.add_argument("--out", default=None, help="Write the result here instead of stdout.")
    patch_apply.add_argument(
        "--metrics-out", default=None, help="Write Prometheus metrics here after applying (if enabled in config)."
    )
    patch_apply.add_argument("--config", default="configs/dev.yaml", help="Config file (repo-relative).")
    patch_apply.set_defaults(func=cmd_patch_apply)

    merge = sub.add_parser("merge")
    merge_sub = merge.add_subparsers(dest="merge_command", required=True)

    merge_apply = merge_sub.add_parser("apply")
    merge_apply.add_argument("--document", required=True, help="JSON document to patch.")
    merge_apply.add_argument("--merge-patch", required=True, help="JSON Merge Patch document.")
    merge_apply.add_argument(
        "--mode",
        choices=("direct", "operations"),
        default="direct",
        help="Merge directly, or translate into JSON Patch operations first.",
    )
    merge_apply.add_argument("--out", default=None, help="Write the result here instead of stdout.")
    merge_apply.add_argument("--config", default="configs/dev.yaml", help="Config file (repo-relative).")
    merge_apply.set_defaults(func=cmd_merge_apply)

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
